#!/usr/bin/env python3
"""
SML Schema Compiler

This script loads an SML schema file, validates it, and generates a Python module with
typed data classes and loaders for documents that follow the schema.

Usage:
    python sml_schema_compiler.py --input <schema_file> --output <output_dir> [--output-name <name>] [--runtime-module <module>] [--check] [--format] [--verbose]

Arguments:
    --input, -i        : Path to the SML schema file
    --output, -o       : Directory where the generated module is written
    --output-name, -n  : Module name without extension (default: input filename)
    --runtime-module   : Import name of the SML document runtime (default: sml_document)
    --check            : Only validate the schema, do not generate code
    --format           : Print the schema in canonical form to stdout
    --verbose, -v      : Enable verbose output for debugging
    --help, -h         : Show this help message

Environment variables SMLSCHEMA_INPUT_FILE, SMLSCHEMA_OUTPUT_DIR, SMLSCHEMA_OUTPUT_NAME,
SMLSCHEMA_RUNTIME_MODULE and SMLSCHEMA_VERBOSE override the matching arguments.

Example:
    python sml_schema_compiler.py --input person.sml --output ./generated
    python sml_schema_compiler.py --input person.sml --check --format
"""

import argparse
import os
import sys

from schema_codegen import generate_python_code
from schema_errors import SchemaError
from schema_loader import load_schema_file
from schema_model import Schema

DEFAULT_RUNTIME_MODULE = "sml_document"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class SchemaCompiler:
    """
    Runs one compilation: load the schema file, then write the generated module.
    """

    def __init__(self, input_file: str, output_dir: str = None, output_name: str = None,
                 runtime_module: str = DEFAULT_RUNTIME_MODULE, verbose: bool = False):
        self.input_file = input_file
        self.output_dir = output_dir
        self.runtime_module = runtime_module
        self.verbose = verbose
        self.schema = None

        if output_name is None:
            self.output_name = os.path.splitext(os.path.basename(input_file))[0]
        else:
            self.output_name = output_name

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] SchemaCompiler: {message}", file=sys.stderr)

    def load(self) -> Schema:
        self.debug_print(f"loading schema {self.input_file}")
        self.schema = load_schema_file(self.input_file, self.verbose)
        return self.schema

    def output_path(self) -> str:
        return os.path.join(self.output_dir, f"{self.output_name}.py")

    def generate(self) -> str:
        """
        Generate the Python module and write it to the output directory.

        Returns:
            str: Path of the written file
        """
        if self.schema is None:
            raise RuntimeError("No schema loaded. Call load() first.")
        if not self.output_dir:
            raise ValueError("No output directory given")
        code = generate_python_code(self.schema, self.runtime_module, self.verbose)
        os.makedirs(self.output_dir, exist_ok=True)
        path = self.output_path()
        with open(path, 'w', encoding='utf-8') as f:
            f.write(code)
        self.debug_print(f"wrote {len(code)} characters to {path}")
        return path


def parse_arguments(argv=None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Compile an SML schema into a Python data-binding module",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument('--input', '-i', help='Path to the SML schema file')
    parser.add_argument('--output', '-o', help='Directory where the generated module is written')
    parser.add_argument('--output-name', '-n', help='Module name without extension (default: input filename)')
    parser.add_argument('--runtime-module', default=DEFAULT_RUNTIME_MODULE,
                        help='Import name of the SML document runtime (default: sml_document)')
    parser.add_argument('--check', action='store_true', help='Only validate the schema, do not generate code')
    parser.add_argument('--format', action='store_true', help='Print the schema in canonical form')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output for debugging')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point of the script. Returns the process exit status.
    """
    args = parse_arguments(argv)

    # Override with environment variables if set
    input_file = os.environ.get('SMLSCHEMA_INPUT_FILE', args.input)
    output_dir = os.environ.get('SMLSCHEMA_OUTPUT_DIR', args.output)
    output_name = os.environ.get('SMLSCHEMA_OUTPUT_NAME', args.output_name)
    runtime_module = os.environ.get('SMLSCHEMA_RUNTIME_MODULE', args.runtime_module)
    verbose = _env_flag('SMLSCHEMA_VERBOSE', args.verbose)

    if not input_file:
        print("Error: no input file given (use --input or SMLSCHEMA_INPUT_FILE)", file=sys.stderr)
        return 1
    generate = not args.check
    if generate and not output_dir:
        print("Error: no output directory given (use --output or SMLSCHEMA_OUTPUT_DIR)", file=sys.stderr)
        return 1

    compiler = SchemaCompiler(input_file, output_dir, output_name, runtime_module, verbose)
    try:
        schema = compiler.load()
        if args.format:
            print(schema.to_string())
        if generate:
            path = compiler.generate()
            print(f"Generated Python module: {path}")
        else:
            print(f"Schema is valid: {input_file}")
    except (SchemaError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
