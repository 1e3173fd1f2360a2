"""codestruct - multi-language source code structurer."""

__version__ = "0.1.0"
