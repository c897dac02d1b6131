#!/usr/bin/env python3
"""
Kernel Module Info

Show the metadata embedded in Linux kernel modules. Each argument is either
a path to a module file or a module name/alias resolved through the module
index files under /lib/modules/{version}.
"""

import argparse
import sys
from typing import List, Optional, TextIO

from module_info import __version__
from module_info.exceptions import MetadataRetrievalFailure, ModuleNotFound
from module_info.formatters import BaseFormatter, get_formatter
from module_info.models import RenderConfig
from module_info.parsers import ModuleResolver


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        description="Show information about Linux kernel modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 modinfo.py ext4                      # Full listing for a module name
  python3 modinfo.py ./hello.ko                # Full listing for a module file
  python3 modinfo.py -F alias e1000e           # Only the aliases, one per line
  python3 modinfo.py -n pci:v00008086d000010D3sv*  # Path of every module matching an alias
  python3 modinfo.py -0 ext4 | xargs -0 -n1    # NUL separated, key=value records
  python3 modinfo.py -k 6.1.0 -b /mnt ext4     # Look in /mnt/lib/modules/6.1.0
        """
    )

    parser.add_argument('modules', nargs='*', metavar='MODULE',
                        help='Module file, name or alias')

    # Field selection; the last one given wins
    parser.add_argument('--author', '-a', dest='field', action='store_const', const='author',
                        help="Print only 'author'")
    parser.add_argument('--description', '-d', dest='field', action='store_const',
                        const='description', help="Print only 'description'")
    parser.add_argument('--license', '-l', dest='field', action='store_const', const='license',
                        help="Print only 'license'")
    parser.add_argument('--parameters', '-p', dest='field', action='store_const', const='parm',
                        help="Print only 'parm'")
    parser.add_argument('--filename', '-n', dest='field', action='store_const', const='filename',
                        help="Print only 'filename'")
    parser.add_argument('--field', '-F', dest='field', type=str, metavar='FIELD',
                        help='Print only provided FIELD')

    parser.add_argument('--null', '-0', action='store_true',
                        help='Use \\0 instead of \\n')

    # Module directory location
    parser.add_argument('--set-version', '-k', type=str, metavar='VERSION',
                        help='Use VERSION instead of `uname -r`')
    parser.add_argument('--basedir', '-b', type=str, metavar='DIR',
                        help='Use DIR as filesystem root for /lib/modules')

    parser.add_argument('--version', '-V', action='version',
                        version=f'%(prog)s version {__version__}',
                        help='Show version information')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Print module lookup details to stderr')

    return parser


def show_module(identifier: str, resolver: ModuleResolver, formatter: BaseFormatter,
                stream: TextIO, verbose: bool = False) -> bool:
    """
    Print the report of every module an identifier resolves to.

    Args:
        identifier: Module file, name or alias from the command line
        resolver: Resolver for the selected modules directory
        formatter: Rendering strategy for the current configuration
        stream: Output stream for the reports
        verbose: Print resolution details to stderr

    Returns:
        bool: True if every report was rendered without error
    """
    try:
        records = resolver.resolve(identifier)
    except ModuleNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return False

    success = True
    for record in records:
        if verbose:
            print(f"Resolved {identifier} to {record.name} ({record.path})", file=sys.stderr)
        try:
            if not formatter.write(record, stream):
                success = False
        except MetadataRetrievalFailure as e:
            print(f"Error: {e}", file=sys.stderr)
            success = False
        except MemoryError:
            print(f"Error: Out of memory while reporting '{record.name}'", file=sys.stderr)
            success = False
    return success


def main(argv: Optional[List[str]] = None, stream: Optional[TextIO] = None) -> int:
    """Main function to run the module info reporter."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.modules:
        print("Error: missing module or filename.", file=sys.stderr)
        return 1

    if stream is None:
        stream = sys.stdout

    config = RenderConfig("\0" if args.null else "\n", args.field)
    formatter = get_formatter(config)
    resolver = ModuleResolver.from_options(args.basedir, args.set_version, verbose=args.verbose)

    if args.verbose:
        print(f"Arguments: {args}", file=sys.stderr)
        print(f"Modules directory: {resolver.dirname}", file=sys.stderr)

    success = True
    try:
        for identifier in args.modules:
            if not show_module(identifier, resolver, formatter, stream, args.verbose):
                success = False
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 1

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
