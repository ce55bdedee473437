"""Scanner, lexer and parser for the service blocks of .proto files."""