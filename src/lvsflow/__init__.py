"""LVS-Flow: Layout-Versus-Schematic orchestration for open-source EDA tools"""

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("lvsflow")
except (ImportError, PackageNotFoundError):
    try:
        from ._version import __version__
    except ImportError:
        __version__ = "0.0.0"
