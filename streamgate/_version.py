from importlib.metadata import PackageNotFoundError, version as _version


def get_version() -> str:
    try:
        return _version("streamgate")
    except PackageNotFoundError:
        # running from a source checkout that was never installed
        return "0.0.0"


__version__ = get_version()
