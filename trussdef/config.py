"""Inputs to a service generation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import IO, Dict, List, Optional, Union


@dataclass
class Config:
    """Where the definition files are and where generated code is written."""

    # The entries of $GOPATH
    go_path: List[str] = field(default_factory=list)

    # The Go package and directory that receive the generated .pb.go files
    pb_package: str = ""
    pb_path: str = ""

    # The Go package and directory that receive the service code
    service_package: str = ""
    service_path: str = ""

    # The paths of the .proto files the service is generated from
    def_paths: List[str] = field(default_factory=list)

    # The files of a previously generated service, if any
    prev_gen: Optional[Dict[str, Union[str, bytes, IO[str], IO[bytes]]]] = None