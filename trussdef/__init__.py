"""Model of gRPC service definitions built from .proto files and generated Go code."""

__version__ = "0.1.0"