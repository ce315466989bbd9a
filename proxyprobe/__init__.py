"""proxyprobe: parse proxy share links and keep the ones that answer."""

__version__ = "0.1.0"
