#!/usr/bin/env python3
"""
StructWrangler

This script reads struct and union type definitions from a metadata file (.mdl) and generates
the matching Rust declarations: #[repr(C)] structs and unions with their ABI shadow structs,
derived operations and identity constants, one module per metadata namespace.

Usage:
    python struct_wrangler.py --input <input_file> --output <output_dir> [--namespace <ns>] [--output-name <name>] [--dump-model] [--verbose] [--help]

Arguments:
    --input, -i       : Path to the metadata file containing type definitions
    --output, -o      : Directory where output files will be generated
    --namespace       : Only generate definitions from this namespace (default: all)
    --output-name, -n : Base name for output files without extension (default: input filename)
    --dump-model      : Also write the built models as <output_name>_model.json
    --verbose, -v     : Enable verbose output for debugging
    --help, -h        : Show this help message

Environment variables SW_INPUT_FILE, SW_OUTPUT_DIR, SW_NAMESPACE, SW_OUTPUT_NAME and SW_VERBOSE
override the matching arguments.

Example:
    python struct_wrangler.py --input gdi.mdl --output ./generated
    python struct_wrangler.py --input gdi.mdl --output ./generated --namespace Windows.Win32.Gdi --dump-model
"""

import argparse
import os
import sys
from typing import List, Optional

from dependency_sort import DependencyCycleError, topological_sort_models
from generators.rust_struct_generator import RustStructGenerator
from metadata import MetadataError, MetadataReader, TypeCategory
from metadata_loader import load_metadata_file
from model_debug import dump_model_json
from semantic_type import TypeResolver
from struct_model import AnonymousNestedTypeError, StructModelBuilder, StructuralModel
from type_name import TypeName


class StructCodeConverter:
    """
    Handles the conversion of struct definitions from a metadata file to Rust source.
    """

    def __init__(self, input_file: str, output_dir: str, namespace: Optional[str] = None,
                 output_name: Optional[str] = None, verbose: bool = False):
        """
        Initialize the converter with input file and output directory.

        Args:
            input_file: Path to the metadata file
            output_dir: Directory where output files will be generated
            namespace: Only convert definitions in this namespace (default: all)
            output_name: Base name for output files without extension (default: input filename)
            verbose: Whether to print debug information (default: False)
        """
        self.input_file = input_file
        self.output_dir = output_dir
        self.namespace = namespace
        self.verbose = verbose
        self.reader: Optional[MetadataReader] = None
        self.models: List[StructuralModel] = []

        # If output_name is not provided, use the input filename without extension
        if output_name is None:
            self.output_name = os.path.splitext(os.path.basename(input_file))[0]
        else:
            self.output_name = output_name

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def load_input_file(self) -> bool:
        """
        Load the metadata file.

        Returns:
            bool: True if loading was successful, False otherwise
        """
        try:
            self.reader = load_metadata_file(self.input_file, self.verbose)
        except (OSError, MetadataError) as e:
            print(f"Error: {e}")
            return False
        return True

    def build_models(self) -> bool:
        """
        Build a StructuralModel for every top-level struct or union and order them so
        that types held by value come first.

        Returns:
            bool: True if all models were built, False otherwise
        """
        if self.reader is None:
            print("Error: No metadata loaded. Load input file first.")
            return False

        definitions = [
            d for d in self.reader.definitions()
            if d.category == TypeCategory.STRUCT
            and (self.namespace is None or d.namespace == self.namespace)
        ]
        if self.namespace is not None and not definitions:
            print(f"Error: No struct definitions found in namespace '{self.namespace}'")
            return False

        builder = StructModelBuilder(TypeResolver(self.reader, self.verbose), self.verbose)
        try:
            models = [builder.build(TypeName(d)) for d in definitions]
            self.models = topological_sort_models(models)
        except (MetadataError, AnonymousNestedTypeError, DependencyCycleError) as e:
            print(f"Error: {e}")
            return False
        self.debug_print(f"Model order: {[m.name.qualified_name for m in self.models]}")
        return True

    def generate_output(self, dump_model: bool = False) -> bool:
        """
        Write <output_name>.rs, and <output_name>_model.json when dump_model is set.

        Returns:
            bool: True if generation was successful, False otherwise
        """
        if self.reader is None:
            print("Error: No metadata loaded. Load input file first.")
            return False

        os.makedirs(self.output_dir, exist_ok=True)
        generator = RustStructGenerator(self.verbose)
        output_path = os.path.join(self.output_dir, f"{self.output_name}.rs")
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(generator.generate_file(self.models))
        self.debug_print(f"Wrote {output_path}")

        if dump_model:
            dump_model_json(self.models, os.path.join(self.output_dir, f"{self.output_name}_model.json"),
                            self.verbose)
        return True


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Convert struct metadata definitions to Rust declarations",
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument('--input', '-i', help='Path to the metadata file containing type definitions')
    parser.add_argument('--output', '-o', help='Directory where output files will be generated')
    parser.add_argument('--namespace', help='Only generate definitions from this namespace')
    parser.add_argument('--output-name', '-n', help='Base name for output files without extension (default: input filename)')
    parser.add_argument('--dump-model', action='store_true', help='Also write the built models as JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output for debugging')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """
    Main entry point of the script.
    """
    args = parse_arguments(argv)

    # Override with environment variables if set
    input_file = os.environ.get('SW_INPUT_FILE', args.input)
    output_dir = os.environ.get('SW_OUTPUT_DIR', args.output)
    namespace = os.environ.get('SW_NAMESPACE', args.namespace)
    output_name = os.environ.get('SW_OUTPUT_NAME', args.output_name)
    verbose = args.verbose
    if 'SW_VERBOSE' in os.environ:
        verbose = os.environ['SW_VERBOSE'].strip().lower() in ('1', 'true', 'yes', 'on')

    if not input_file or not output_dir:
        print("Error: --input and --output are required")
        sys.exit(1)

    converter = StructCodeConverter(input_file, output_dir, namespace, output_name, verbose)

    if not converter.load_input_file():
        sys.exit(1)
    if not converter.build_models():
        sys.exit(1)
    if not converter.generate_output(args.dump_model):
        sys.exit(1)

    print("Struct conversion completed successfully.")


if __name__ == '__main__':
    main()
