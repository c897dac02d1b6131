"""
Parsers for kernel module metadata.

This module contains classes for locating kernel modules on disk or
through the module index files under /lib/modules/{version}, and for
extracting the raw key/value records from a module's .modinfo section.
"""

import fnmatch
import functools
import gzip
import io
import lzma
import os
import sys
from typing import Dict, List, Optional, Tuple

import zstandard as zstd
from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from .exceptions import MetadataRetrievalFailure, ModuleNotFound
from .models import ModuleRecord, RawPair

BUILTIN_PATH = "(builtin)"
MODINFO_SECTION = ".modinfo"
COMPRESSION_SUFFIXES = (".zst", ".xz", ".gz")


def normalize_name(name: str) -> str:
    """Module names treat '-' and '_' as the same character."""
    return name.replace("-", "_")


def normalize_alias(alias: str) -> str:
    """Replace '-' with '_' except inside [...] character classes."""
    result = []
    depth = 0
    for char in alias:
        if char == "[":
            depth += 1
        elif char == "]" and depth:
            depth -= 1
        elif char == "-" and not depth:
            char = "_"
        result.append(char)
    return "".join(result)


def default_modules_dir() -> str:
    return f"/lib/modules/{os.uname().release}"


class ModinfoParser:
    """Parser for the .modinfo section of kernel module files."""

    @staticmethod
    def module_name_from_path(path: str) -> str:
        """
        Derive a module name from its file name.

        Args:
            path: Path such as "kernel/fs/ext4/ext4.ko.zst"

        Returns:
            str: Normalized module name, e.g. "ext4"
        """
        base = os.path.basename(path)
        for suffix in COMPRESSION_SUFFIXES:
            if base.endswith(suffix):
                base = base[:-len(suffix)]
                break
        if base.endswith(".ko"):
            base = base[:-len(".ko")]
        return normalize_name(base)

    @staticmethod
    def read_module_bytes(path: str, name: Optional[str] = None) -> bytes:
        """
        Read a module file, decompressing .zst, .xz and .gz modules.

        Args:
            path: Path to the module file
            name: Module name used in error messages

        Returns:
            bytes: The uncompressed ELF image

        Raises:
            MetadataRetrievalFailure: If the file cannot be read or decompressed
        """
        name = name or ModinfoParser.module_name_from_path(path)
        try:
            if path.endswith(".zst"):
                with open(path, "rb") as compressed_file:
                    dctx = zstd.ZstdDecompressor()
                    with dctx.stream_reader(compressed_file) as reader:
                        return reader.read()
            if path.endswith(".xz"):
                with lzma.open(path, "rb") as f:
                    return f.read()
            if path.endswith(".gz"):
                with gzip.open(path, "rb") as f:
                    return f.read()
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise MetadataRetrievalFailure(name, e.strerror or str(e)) from e
        except (EOFError, lzma.LZMAError, zstd.ZstdError) as e:
            raise MetadataRetrievalFailure(name, f"cannot decompress {path}: {e}") from e

    @staticmethod
    def parse_modinfo_strings(data: bytes) -> List[RawPair]:
        """
        Split .modinfo section data into raw records.

        The section is a sequence of NUL-terminated "key=value" strings.
        A string without '=' becomes a record with an empty value.
        """
        pairs = []
        for entry in data.split(b"\x00"):
            if not entry:
                continue
            key, _, value = entry.decode("utf-8", errors="replace").partition("=")
            pairs.append(RawPair(key, value))
        return pairs

    @staticmethod
    def extract_modinfo(path: str, name: Optional[str] = None) -> List[RawPair]:
        """
        Extract the raw records of a module file.

        Args:
            path: Path to the .ko file, optionally compressed
            name: Module name used in error messages

        Returns:
            List[RawPair]: Records in section order

        Raises:
            MetadataRetrievalFailure: If the file is not an ELF image or has
                no .modinfo section
        """
        name = name or ModinfoParser.module_name_from_path(path)
        data = ModinfoParser.read_module_bytes(path, name)

        try:
            elf = ELFFile(io.BytesIO(data))
            modinfo_section = elf.get_section_by_name(MODINFO_SECTION)
            if modinfo_section is None:
                raise MetadataRetrievalFailure(name, "No data available")
            modinfo_data = modinfo_section.data()
        except ELFError as e:
            raise MetadataRetrievalFailure(name, f"invalid module format: {e}") from e

        return ModinfoParser.parse_modinfo_strings(modinfo_data)


class BuiltinModinfoParser:
    """Parser for modules.builtin.modinfo, the metadata of builtin modules."""

    @staticmethod
    def parse(data: bytes) -> Dict[str, List[RawPair]]:
        """
        Parse NUL-separated "module.key=value" strings.

        Returns:
            Dict[str, List[RawPair]]: Records per module name, in file order
        """
        metadata: Dict[str, List[RawPair]] = {}
        for entry in data.split(b"\x00"):
            if not entry:
                continue
            text = entry.decode("utf-8", errors="replace")
            qualified_key, eq, value = text.partition("=")
            module_name, dot, key = qualified_key.partition(".")
            if not eq or not dot:
                continue
            metadata.setdefault(normalize_name(module_name), []).append(RawPair(key, value))
        return metadata

    @classmethod
    def load(cls, path: str) -> Dict[str, List[RawPair]]:
        if not os.path.exists(path):
            return {}
        with open(path, "rb") as f:
            return cls.parse(f.read())


class ModuleResolver:
    """Resolve module files, names and aliases to ModuleRecords."""

    def __init__(self, dirname: Optional[str] = None, verbose: bool = False):
        """
        Initialize a ModuleResolver instance.

        Args:
            dirname: Modules directory, /lib/modules/{uname -r} if not given
            verbose: Print index loading diagnostics to stderr
        """
        self.dirname = dirname if dirname is not None else default_modules_dir()
        self.verbose = verbose
        self._dependencies: Optional[Dict[str, str]] = None
        self._aliases: Optional[List[Tuple[str, str]]] = None
        self._symbols: Optional[Dict[str, str]] = None
        self._builtin: Optional[Dict[str, None]] = None
        self._builtin_modinfo: Optional[Dict[str, List[RawPair]]] = None

    @classmethod
    def from_options(cls, basedir: Optional[str] = None,
                     kernel_version: Optional[str] = None,
                     verbose: bool = False) -> "ModuleResolver":
        """Build a resolver for {basedir}/lib/modules/{kernel_version}."""
        if basedir is None and kernel_version is None:
            return cls(verbose=verbose)
        root = basedir or ""
        version = kernel_version or os.uname().release
        return cls(f"{root}/lib/modules/{version}", verbose=verbose)

    def _index_path(self, filename: str) -> str:
        return os.path.join(self.dirname, filename)

    def _read_index(self, filename: str) -> List[str]:
        path = self._index_path(filename)
        if not os.path.exists(path):
            if self.verbose:
                print(f"Warning: {path} not found", file=sys.stderr)
            return []
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return [line.strip() for line in f if line.strip() and not line.startswith("#")]
        except OSError as e:
            print(f"Warning: Error reading {path}: {e}", file=sys.stderr)
            return []

    @property
    def dependencies(self) -> Dict[str, str]:
        """Module name to file path, from modules.dep."""
        if self._dependencies is None:
            self._dependencies = {}
            for line in self._read_index("modules.dep"):
                module_path = line.split(":", 1)[0]
                if not os.path.isabs(module_path):
                    module_path = os.path.join(self.dirname, module_path)
                name = ModinfoParser.module_name_from_path(module_path)
                self._dependencies.setdefault(name, module_path)
        return self._dependencies

    @property
    def symbols(self) -> Dict[str, str]:
        """Exported symbol alias to module name, from modules.symbols."""
        if self._symbols is None:
            self._symbols = {}
            for symbol, module_name in self._parse_alias_lines(self._read_index("modules.symbols")):
                self._symbols.setdefault(symbol, module_name)
        return self._symbols

    @property
    def builtin(self) -> Dict[str, None]:
        """Names of modules compiled into the kernel, from modules.builtin."""
        if self._builtin is None:
            self._builtin = dict.fromkeys(
                ModinfoParser.module_name_from_path(line)
                for line in self._read_index("modules.builtin"))
        return self._builtin

    @property
    def builtin_modinfo(self) -> Dict[str, List[RawPair]]:
        if self._builtin_modinfo is None:
            self._builtin_modinfo = BuiltinModinfoParser.load(
                self._index_path("modules.builtin.modinfo"))
        return self._builtin_modinfo

    @staticmethod
    def _parse_alias_lines(lines: List[str]) -> List[Tuple[str, str]]:
        entries = []
        for line in lines:
            parts = line.split()
            if len(parts) != 3 or parts[0] != "alias":
                continue
            entries.append((parts[1], normalize_name(parts[2])))
        return entries

    @property
    def aliases(self) -> List[Tuple[str, str]]:
        """Normalized (pattern, module name) pairs from modules.alias, in file order."""
        if self._aliases is None:
            self._aliases = [
                (normalize_alias(pattern), module_name)
                for pattern, module_name in self._parse_alias_lines(self._read_index("modules.alias"))
            ]
        return self._aliases

    def resolve(self, identifier: str) -> List[ModuleRecord]:
        """
        Resolve a module file path, name or alias.

        Args:
            identifier: Path to a module file, or a module name or alias

        Returns:
            List[ModuleRecord]: One record for a file, one or more for an alias

        Raises:
            ModuleNotFound: If nothing matches the identifier
        """
        if os.path.isfile(identifier):
            return [self.from_path(identifier)]

        records = self.lookup(identifier)
        if not records:
            raise ModuleNotFound(identifier)
        return records

    def from_path(self, path: str) -> ModuleRecord:
        """Build the record of a module file given on the command line."""
        if not os.access(path, os.R_OK):
            raise ModuleNotFound(path, is_path=True)
        module_path = os.path.abspath(path)
        name = ModinfoParser.module_name_from_path(module_path)
        return ModuleRecord(name, module_path,
                            functools.partial(ModinfoParser.extract_modinfo, module_path, name))

    def match_aliases(self, identifier: str) -> List[str]:
        """Return the module names whose alias patterns match identifier."""
        if identifier.startswith("symbol:"):
            module_name = self.symbols.get(identifier)
            return [module_name] if module_name else []

        alias = normalize_alias(identifier)
        names: List[str] = []
        for pattern, module_name in self.aliases:
            if module_name not in names and fnmatch.fnmatchcase(alias, pattern):
                names.append(module_name)
        return names

    def lookup(self, identifier: str) -> List[ModuleRecord]:
        """
        Look up a module by name, then by alias, then among builtin modules.

        The first source that yields a match wins.
        """
        name = normalize_name(identifier)
        if name in self.dependencies:
            names = [name]
        else:
            names = self.match_aliases(identifier)
            if not names and name in self.builtin:
                names = [name]

        records = []
        for module_name in names:
            record = self._record_for(module_name)
            if record is not None:
                records.append(record)
            elif self.verbose:
                print(f"Warning: alias {identifier} points to unknown module {module_name}",
                      file=sys.stderr)
        return records

    def _record_for(self, module_name: str) -> Optional[ModuleRecord]:
        module_path = self.dependencies.get(module_name)
        if module_path is not None:
            return ModuleRecord(module_name, module_path,
                                functools.partial(ModinfoParser.extract_modinfo,
                                                  module_path, module_name))
        if module_name in self.builtin:
            return ModuleRecord(module_name, BUILTIN_PATH,
                                functools.partial(self.builtin_info, module_name))
        return None

    def builtin_info(self, module_name: str) -> List[RawPair]:
        """
        Return the records of a builtin module from modules.builtin.modinfo.

        Raises:
            MetadataRetrievalFailure: If modules.builtin.modinfo cannot be read
        """
        try:
            metadata = self.builtin_modinfo
        except OSError as e:
            raise MetadataRetrievalFailure(module_name, e.strerror or str(e)) from e
        return list(metadata.get(module_name, []))
