#!/usr/bin/env python3
"""
CLI for checking and inspecting factconf files.

Usage:
    python -m factconf check FILE [FILE ...] [--registry MODULE:ATTR]
    python -m factconf dump FILE [--format text|json|yaml] [--registry MODULE:ATTR]
    python -m factconf types --registry MODULE:ATTR

The registry named by --registry is any ConstructionResolver (usually a
FactoryRegistry) importable from the host project, for example
`--registry myproject.config:registry`. Without one, files may only use
primitives and lists.

Examples:
    # Check syntax, types and imports
    python -m factconf check experiment.cfg --registry myproject.config:registry

    # Print every variable the file defines as YAML
    python -m factconf dump experiment.cfg --format yaml

    # List the constructible types
    python -m factconf types --registry myproject.config:registry
"""

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path

import yaml

from .errors import DiagnosticCollector, FactconfError
from .factory import ConstructionResolver
from .interpreter import Interpreter
from .introspection import describe_bindings, describe_types, format_types
from .settings import load_settings


def load_resolver(spec: str) -> ConstructionResolver:
    """Import `module:attr` and return the resolver it names."""
    if ':' not in spec:
        raise ValueError(f"Invalid registry '{spec}' (expected module:attr)")
    module_name, attr = spec.split(':', 1)
    module = importlib.import_module(module_name)
    try:
        resolver = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'")
    if callable(resolver) and not isinstance(resolver, ConstructionResolver):
        resolver = resolver()
    if not isinstance(resolver, ConstructionResolver):
        raise ValueError(f"'{spec}' is not a ConstructionResolver")
    return resolver


def make_interpreter(args) -> Interpreter:
    settings = load_settings(args.settings)
    resolver = load_resolver(args.registry) if args.registry else None
    return Interpreter(resolver=resolver, settings=settings,
                       debug=args.debug if args.debug else None)


def cmd_check(args):
    """Evaluate each file in a fresh interpreter and report errors."""
    collector = DiagnosticCollector()
    for name in args.files:
        source_path = Path(name)
        if not source_path.exists():
            print(f"Error: File not found: {source_path}", file=sys.stderr)
            return 1

        interp = make_interpreter(args)
        try:
            interp.eval_file(str(source_path))
        except FactconfError as e:
            collector.add_error(e)
            continue
        print(f"OK: {source_path.name} - {len(interp.env)} variable(s)")

    if collector.has_errors:
        print(collector.format_all(), file=sys.stderr)
        return 1
    return 0


def cmd_dump(args):
    """Evaluate a file and print its bindings."""
    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    interp = make_interpreter(args)
    try:
        interp.eval_file(str(source_path))
    except FactconfError as e:
        print(e, file=sys.stderr)
        return 1

    if args.format == 'json':
        print(json.dumps(describe_bindings(interp), indent=2))
    elif args.format == 'yaml':
        print(yaml.safe_dump(describe_bindings(interp), sort_keys=False), end='')
    else:
        interp.print_env(sys.stdout)
    return 0


def cmd_types(args):
    """List the types the registry can construct."""
    resolver = load_resolver(args.registry)
    if args.format == 'json':
        print(json.dumps(describe_types(resolver), indent=2))
    elif args.format == 'yaml':
        print(yaml.safe_dump(describe_types(resolver), sort_keys=False), end='')
    else:
        text = format_types(resolver)
        print(text if text else "(no constructible types)")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m factconf',
        description='factconf configuration checker',
    )
    parser.add_argument('--registry', metavar='MODULE:ATTR',
                        help='ConstructionResolver to construct objects with')
    parser.add_argument('--settings', metavar='FILE',
                        help='YAML settings file (default: $FACTCONF_SETTINGS)')
    parser.add_argument('-d', '--debug', type=int, default=0,
                        help='Debug level; non-zero enables debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    check_parser = subparsers.add_parser('check', help='Check files for errors')
    check_parser.add_argument('files', nargs='+', help='Configuration files')

    dump_parser = subparsers.add_parser('dump', help='Print the variables a file defines')
    dump_parser.add_argument('file', help='Configuration file')
    dump_parser.add_argument('--format', choices=['text', 'json', 'yaml'], default='text')

    types_parser = subparsers.add_parser('types', help='List constructible types')
    types_parser.add_argument('--format', choices=['text', 'json', 'yaml'], default='text')

    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    try:
        if args.action == 'check':
            return cmd_check(args)
        elif args.action == 'dump':
            return cmd_dump(args)
        elif args.action == 'types':
            if not args.registry:
                print("Error: 'types' requires --registry", file=sys.stderr)
                return 1
            return cmd_types(args)
    except (ValueError, ImportError, FileNotFoundError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
