"""
factconf: an embeddable interpreter for typed configuration files.

Configuration files assign primitives, lists and factory-constructed
objects to named variables:

    // experiment.cfg
    import "defaults.cfg";
    string n = "foo";
    Model m = PerceptronModel(name(n), weights({0.5, 1.5}));
    m_vec = {m, PerceptronModel(name("bar"))};

Usage:
    from factconf import Interpreter, FactoryRegistry, Param, Slot

    registry = FactoryRegistry()
    registry.register("Model", "PerceptronModel", PerceptronModel,
                      params=[Param("name", "string"),
                              Param("weights", "double[]", required=False)])

    interp = Interpreter(resolver=registry)
    interp.eval_file("experiment.cfg")

    model = Slot(PerceptronModel)
    interp.get("m", model)
"""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("factconf")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    TokenStream,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    TypeSpec,
    Expression,
    Literal,
    NullLiteral,
    Identifier,
    ListLiteral,
    ParamInit,
    ConstructionSpec,
    Statement,
    ImportStatement,
    Assignment,
    format_node,
)

from .errors import (
    FactconfError,
    LexerError,
    ParserError,
    TypeError,
    RetrievalTypeError,
    UnresolvedReferenceError,
    ImportError,
    ImportNotFoundError,
    ImportCycleError,
    ImportDepthError,
    ConstructionError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .types import (
    Type,
    PrimitiveType,
    ObjectType,
    SequenceType,
    BOOL, INT, DOUBLE, STRING, NULL,
    resolve_type_name,
    parse_type,
)

from .values import (
    Value,
    bool_val,
    int_val,
    double_val,
    string_val,
    object_val,
    null_val,
    sequence_val,
    unwrap_value,
)

from .environment import (
    Binding,
    Environment,
    Slot,
)

from .factory import (
    ConstructionFailure,
    ConstructionResolver,
    Constructible,
    FactoryRegistry,
    Param,
)

from .streams import (
    StreamOpener,
    FileStreamOpener,
    MemoryStreamOpener,
)

from .imports import (
    ImportFrame,
    ImportStack,
)

from .settings import (
    InterpreterSettings,
    load_settings,
)

from .interpreter import Interpreter

from .introspection import (
    describe_bindings,
    describe_types,
    format_types,
)

__all__ = [
    '__version__',

    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer
    'Lexer',
    'TokenStream',
    'tokenize',

    # Parser
    'Parser',
    'parse',

    # AST nodes
    'AstNode',
    'AstVisitor',
    'TypeSpec',
    'Expression',
    'Literal',
    'NullLiteral',
    'Identifier',
    'ListLiteral',
    'ParamInit',
    'ConstructionSpec',
    'Statement',
    'ImportStatement',
    'Assignment',
    'format_node',

    # Errors
    'FactconfError',
    'LexerError',
    'ParserError',
    'TypeError',
    'RetrievalTypeError',
    'UnresolvedReferenceError',
    'ImportError',
    'ImportNotFoundError',
    'ImportCycleError',
    'ImportDepthError',
    'ConstructionError',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Types and values
    'Type',
    'PrimitiveType',
    'ObjectType',
    'SequenceType',
    'BOOL', 'INT', 'DOUBLE', 'STRING', 'NULL',
    'resolve_type_name',
    'parse_type',
    'Value',
    'bool_val',
    'int_val',
    'double_val',
    'string_val',
    'object_val',
    'null_val',
    'sequence_val',
    'unwrap_value',

    # Environment
    'Binding',
    'Environment',
    'Slot',

    # Construction
    'ConstructionFailure',
    'ConstructionResolver',
    'Constructible',
    'FactoryRegistry',
    'Param',

    # Streams and imports
    'StreamOpener',
    'FileStreamOpener',
    'MemoryStreamOpener',
    'ImportFrame',
    'ImportStack',

    # Settings
    'InterpreterSettings',
    'load_settings',

    # Interpreter
    'Interpreter',

    # Introspection
    'describe_bindings',
    'describe_types',
    'format_types',
]
