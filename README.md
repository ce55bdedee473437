# trussdef

`trussdef` builds a simple, navigable model of a gRPC service from two
sources: the `.proto` files that define it and the Go code generated from
them. The result lists the messages, enums and the service with its methods,
and for every method the HTTP bindings declared through
`option (google.api.http)`, with each request field placed in the path, the
query string or the body.

## What is in the package

- `trussdef.svcparse` reads the `service` block of a `.proto` file.
  `scanner.SvcScanner` splits the text into units and keeps track of brace
  depth and line numbers, `lexer.SvcLexer` turns those units into tokens
  (`tokens.Token`), and `parser.parse_service` produces a `Service` with its
  `Method`s, `HTTPBinding`s and binding `Field`s, with the comments in front
  of them kept as descriptions. Malformed input raises `ParserError`; an
  unexpected token where HTTP options belong raises `OptionalParseError`.
- `trussdef.goast.parse_file` reads the package name and the type and
  function declarations of a generated Go file; function bodies, constants,
  variables and imports are skipped. Invalid input raises `GoSyntaxError`.
- `trussdef.svcdef.new(go_files, proto_files)` puts both together into a
  `trussdef.model.Svcdef`: messages, enums, the service, field types linked
  to the messages and enums they name, and HTTP bindings with their
  parameters. The building blocks (`new_message`, `new_field`, `new_map`,
  `new_service`, `new_service_method`, `new_type_map`, `resolve_types`) are
  public too.
- `trussdef.consolidate` holds the rules for bindings: `get_verb`,
  `get_path_params`, `param_location`, `assemble_http_params` and
  `consolidate_http`.
- `trussdef.naming.camel_case` converts proto names to the names used in
  generated Go code (`foo_bar_test` becomes `FooBarTest`, `_Foo_Bar`
  becomes `XFoo_Bar`).
- `trussdef.fromstring.new_from_string` and
  `trussdef.parsesvcname.from_paths` / `from_readers` start from `.proto`
  text or files alone; they run `protoc` (see below).
- `trussdef.execprotoc` runs `protoc`: `generate_pb_go`, `run_protoc`, and
  `code_generator_request`, which returns protoc's `CodeGeneratorRequest`
  for a set of files.
- `trussdef.getstarted.do` writes a starter `.proto` file to the current
  directory; `ProtoInfo` derives its file, package and service names.
- `trussdef.config.Config` is a plain record of the inputs to a generation
  run: gopath entries, output packages and paths, definition file paths.

## Using it

With the Go code already generated, no external tools are needed. Sources
may be given as strings, bytes or open files:

```python
from pathlib import Path

from trussdef import svcdef

sd = svcdef.new(
    {"echo.pb.go": Path("echo.pb.go").read_text()},
    {"echo.proto": Path("echo.proto").read_text()},
)

print(sd.service.name)
for method in sd.service.methods:
    for binding in method.bindings:
        print(method.name, binding.verb, binding.path)
        for param in binding.params:
            print("   ", param.field.name, param.location)
```

Errors while reading the Go code or the HTTP options are raised as
`ValueError`, with the path of the file in the message.

To start from the `.proto` definition alone:

```python
from trussdef import parsesvcname

name = parsesvcname.from_paths(["/home/me/go"], ["echo.proto"])
```

`from_paths`, `from_readers` and `new_from_string` call `protoc` with the
gogofaster plugin to produce the Go code first, so `protoc` and the
`protoc-gen-gogo` family of plugins must be on `PATH`. Each entry of the
`gopath` list is added to the include path as `<entry>/src`. A failing run
raises `trussdef.execprotoc.ProtocError`, whose `output` holds protoc's
output. `code_generator_request` needs the `protoc-gen-truss-protocast`
plugin on `PATH`.

To create a starter definition named after your service:

```python
from trussdef import getstarted

status = getstarted.do("echo-service")   # writes echoservice.proto
```

`do` refuses to overwrite an existing file and returns 1 in that case, 0 on
success; a trailing `.proto` in the name is dropped with a warning. Its
messages go to the `logging` module.

## Limits

- Only one service per definition is read.
- The parser stops reading a service at the first rpc that declares no HTTP
  options (`rpc X(A) returns (B) {}` or `;`); methods after it get no
  bindings.
- Sub-fields of nested messages are not supported in HTTP paths: a path
  parameter such as `{a.b}` refers to the field `A`.
- Streaming methods are accepted; the `stream` keyword is ignored.

## What it does not do

The package reads service definitions; it does not generate service code
from them, and it has no command-line program. The messages written by
`getstarted.do` suggest follow-up commands that are not part of this
package.