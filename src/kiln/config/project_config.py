"""
kiln.ini configuration parser.

This module loads and saves the project configuration file. The engine works
on an in-memory ``ProjectConfig`` and writes it back only after mutating the
file registry or a module's dependency list.

Example kiln.ini:
    [project]
    name = hello
    version = 0.1.0
    created = 2025

    [settings]
    lang = c++
    compiler = g++
    source_dir = src
    header_dir = include

    [files]
    src/main.cpp = on
    src/scratch.cpp = off

    [libraries]
    path =
        /opt/sfml
        ~/libs/fmt

    [module:net]
    path = src/net
    dependencies =
        src/net/socket.cpp
    output_name = net
"""

import configparser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

LANGUAGES = {"c": (".c", ".h"), "c++": (".cpp", ".hpp")}

FILE_ON = "on"
FILE_OFF = "off"

MODULE_PREFIX = "module:"


class ProjectConfigError(Exception):
    """Exception raised for kiln.ini configuration errors."""

    pass


def split_list(value: Optional[str]) -> List[str]:
    """Split a multi-line INI value on newlines and commas.

    Example:
        For path =
                /opt/sfml
                /opt/fmt
        Returns: ['/opt/sfml', '/opt/fmt']
    """
    if not value:
        return []

    items = []
    for line in value.split("\n"):
        for item in line.split(","):
            item = item.strip()
            if item:
                items.append(item)
    return items


@dataclass
class ProjectInfo:
    """The [project] section."""

    name: str
    version: str = "0.1.0"
    created: Optional[int] = None


@dataclass
class Settings:
    """The [settings] section."""

    lang: str
    compiler: str
    source_dir: str = "src"
    header_dir: str = "include"

    @property
    def source_extension(self) -> str:
        """Extension of compilable units (".c" or ".cpp")."""
        return LANGUAGES[self.lang][0]

    @property
    def header_extension(self) -> str:
        return LANGUAGES[self.lang][1]


@dataclass
class ModuleDefinition:
    """One [module:<name>] section."""

    path: str
    dependencies: List[str] = field(default_factory=list)
    output_name: Optional[str] = None


@dataclass
class ProjectConfig:
    """In-memory working copy of kiln.ini."""

    project: ProjectInfo
    settings: Settings
    files: Dict[str, str] = field(default_factory=dict)
    library_paths: List[str] = field(default_factory=list)
    modules: Dict[str, ModuleDefinition] = field(default_factory=dict)

    def register_files(self, paths: Iterable[str]) -> List[str]:
        """Add unknown paths to the file registry as "on".

        Args:
            paths: Discovered source paths

        Returns:
            Paths that were not registered before, in input order
        """
        added = []
        for path in paths:
            if path not in self.files:
                self.files[path] = FILE_ON
                added.append(path)
        return added

    def is_enabled(self, path: str) -> bool:
        return self.files.get(path, FILE_ON) == FILE_ON

    def get_module(self, name: str) -> ModuleDefinition:
        """Look up a module definition.

        Raises:
            ProjectConfigError: If the module is not defined
        """
        if name not in self.modules:
            available = ", ".join(sorted(self.modules))
            raise ProjectConfigError(
                f"Module '{name}' not found. Available modules: {available or 'none'}"
            )
        return self.modules[name]


class ProjectConfigStore:
    """
    Loads and saves kiln.ini.

    Usage:
        store = ProjectConfigStore(Path("kiln.ini"))
        config = store.load()
        config.register_files(["src/main.cpp"])
        store.save(config)
    """

    def __init__(self, ini_path: Path):
        self.ini_path = Path(ini_path)

    @staticmethod
    def _new_parser() -> configparser.ConfigParser:
        parser = configparser.ConfigParser(
            allow_no_value=True,
            delimiters=("=",),
            interpolation=None,
        )
        # Source paths are keys in [files]; keep their case.
        parser.optionxform = str  # type: ignore[assignment]
        return parser

    def exists(self) -> bool:
        return self.ini_path.is_file()

    def load(self) -> ProjectConfig:
        """
        Parse kiln.ini into a ProjectConfig.

        Returns:
            Parsed configuration

        Raises:
            ProjectConfigError: If the file is missing, unparsable, lacks a
                required key or declares an unknown language
        """
        if not self.ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {self.ini_path}")

        parser = self._new_parser()
        try:
            parser.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {self.ini_path}: {e}") from e

        project = ProjectInfo(
            name=self._require(parser, "project", "name"),
            version=parser.get("project", "version", fallback="0.1.0") or "0.1.0",
            created=self._get_int(parser, "project", "created"),
        )

        lang = self._require(parser, "settings", "lang").lower()
        if lang not in LANGUAGES:
            raise ProjectConfigError(
                f"Unknown language '{lang}' in {self.ini_path} (expected 'c' or 'c++')"
            )

        if not parser.has_option("settings", "compiler"):
            raise ProjectConfigError(f"Missing 'compiler' in [settings] of {self.ini_path}")

        settings = Settings(
            lang=lang,
            compiler=(parser.get("settings", "compiler") or "").strip(),
            source_dir=parser.get("settings", "source_dir", fallback="src") or "src",
            header_dir=parser.get("settings", "header_dir", fallback="include") or "include",
        )

        files: Dict[str, str] = {}
        if parser.has_section("files"):
            for path, state in parser.items("files"):
                state = (state or FILE_ON).strip().lower()
                if state not in (FILE_ON, FILE_OFF):
                    raise ProjectConfigError(
                        f"Invalid state '{state}' for {path} in [files] (expected on/off)"
                    )
                files[path] = state

        library_paths = split_list(parser.get("libraries", "path", fallback=""))

        modules: Dict[str, ModuleDefinition] = {}
        for section in parser.sections():
            if not section.startswith(MODULE_PREFIX):
                continue
            name = section[len(MODULE_PREFIX):].strip()
            modules[name] = ModuleDefinition(
                path=self._require(parser, section, "path"),
                dependencies=split_list(parser.get(section, "dependencies", fallback="")),
                output_name=parser.get(section, "output_name", fallback=None) or None,
            )

        return ProjectConfig(
            project=project,
            settings=settings,
            files=files,
            library_paths=library_paths,
            modules=modules,
        )

    def save(self, config: ProjectConfig) -> None:
        """Write the whole working copy back to kiln.ini."""
        parser = self._new_parser()

        parser["project"] = {"name": config.project.name, "version": config.project.version}
        if config.project.created is not None:
            parser["project"]["created"] = str(config.project.created)

        parser["settings"] = {
            "lang": config.settings.lang,
            "compiler": config.settings.compiler,
            "source_dir": config.settings.source_dir,
            "header_dir": config.settings.header_dir,
        }

        parser["files"] = dict(sorted(config.files.items()))
        parser["libraries"] = {"path": self._join_list(config.library_paths)}

        for name in sorted(config.modules):
            module = config.modules[name]
            section = {
                "path": module.path,
                "dependencies": self._join_list(module.dependencies),
            }
            if module.output_name:
                section["output_name"] = module.output_name
            parser[f"{MODULE_PREFIX}{name}"] = section

        self.ini_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ini_path, "w", encoding="utf-8") as f:
            parser.write(f)

    def _require(self, parser: configparser.ConfigParser, section: str, key: str) -> str:
        value = parser.get(section, key, fallback=None)
        if value is None or not value.strip():
            raise ProjectConfigError(f"Missing '{key}' in [{section}] of {self.ini_path}")
        return value.strip()

    def _get_int(self, parser: configparser.ConfigParser, section: str, key: str) -> Optional[int]:
        value = parser.get(section, key, fallback=None)
        if value is None or not value.strip():
            return None
        try:
            return int(value)
        except ValueError as e:
            raise ProjectConfigError(f"'{key}' in [{section}] must be an integer: {value}") from e

    @staticmethod
    def _join_list(items: List[str]) -> str:
        if not items:
            return ""
        return "\n" + "\n".join(items)
