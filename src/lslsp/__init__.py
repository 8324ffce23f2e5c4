"""lslsp – Logstash pipeline configuration Language Server."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version('lslsp')
except PackageNotFoundError:
    __version__ = '0.0.0.dev0'
