[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trussdef"
version = "0.1.0"
description = "Read gRPC service definitions, with their HTTP annotations, from .proto files and the Go code generated from them"
requires-python = ">=3.10"
dependencies = [
    "protobuf",
]
keywords = ["grpc", "protobuf", "proto", "service definition", "http annotations", "code generation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["trussdef"]

[tool.hatch.build.targets.sdist]
include = ["trussdef", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
