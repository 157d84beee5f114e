"""
Layered configuration.

Options come from several places, merged in this order (later wins):

1. Built-in defaults.
2. Global config: `~/.ctxpack/config.json`.
3. Package config: the `"ctxpack"` key of `package.json`, then the
   `[tool.ctxpack]` table of `pyproject.toml`.
4. Project config: `.ctxpackrc.json` in the scan root.
5. A named profile from the `profiles` table of any of the above.
6. Command-line flags.

Each layer is a ConfigLayer whose fields are all optional; `merge_layers` is
the single place where precedence is applied. Missing or malformed files are
treated as empty layers.
"""

import json
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from constants import (
    DEFAULT_BLOCK_SEPARATOR,
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    DEFAULT_MAX_BYTES_PER_FILE,
    DEFAULT_MODEL,
    GLOBAL_CONFIG_FILE_NAME,
    GLOBAL_DIR_NAME,
    PACKAGE_JSON_KEY,
    PROJECT_CONFIG_FILE_NAME,
)
from core.exceptions import FileWriteError
from core.file_io import FileWriter, FilesystemFileWriter
from core.models import SelectionPolicy
from models import OutputFormat, PackOrder
from utils import split_globs

_LIST_KEYS = ("include", "exclude")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Config files may spell a key in camelCase (JSON) or snake/kebab case (TOML).
_ALIASES = {
    "use_ctxpack_ignore": "use_ignore_file",
    "use_ctxpackignore": "use_ignore_file",
}


@dataclass
class ConfigLayer:
    """
    One layer of configuration. Every field is optional; None means "not set
    at this layer".
    """

    include: list[str] | None = None
    exclude: list[str] | None = None
    use_gitignore: bool | None = None
    use_ignore_file: bool | None = None
    hidden: bool | None = None
    max_bytes_per_file: int | None = None
    model: str | None = None
    encoding: str | None = None
    format: OutputFormat | None = None
    max_tokens: int | None = None
    pack_order: PackOrder | None = None
    strict: bool | None = None
    code_fences: bool | None = None
    header: str | None = None
    block_separator: str | None = None
    xml_wrap: bool | None = None
    tags_wrap: bool | None = None
    prompt: str | None = None
    prompt_file: str | None = None
    mouse: bool | None = None
    profiles: dict[str, "ConfigLayer"] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConfigLayer":
        """
        Build a layer from parsed JSON or TOML.

        Unknown keys and values of the wrong type are ignored.
        """
        layer = cls()
        if not isinstance(data, Mapping):
            return layer

        known = {f.name for f in fields(cls)}
        for raw_key, value in data.items():
            key = _normalize_key(str(raw_key))
            if key not in known or value is None:
                continue
            if key == "profiles":
                if isinstance(value, Mapping):
                    layer.profiles = {
                        str(name): cls.from_mapping(body)
                        for name, body in value.items()
                        if isinstance(body, Mapping)
                    }
                continue
            coerced = _coerce(key, value)
            if coerced is not None:
                setattr(layer, key, coerced)
        return layer


def _normalize_key(key: str) -> str:
    snake = _CAMEL_BOUNDARY.sub("_", key).replace("-", "_").lower()
    return _ALIASES.get(snake, snake)


def _coerce(key: str, value: Any) -> Any:
    if key in _LIST_KEYS:
        if isinstance(value, str):
            return split_globs([value])
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return split_globs(value)
        return None
    if key in ("max_bytes_per_file", "max_tokens"):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        return value
    if key == "format":
        return _enum_or_none(OutputFormat, value)
    if key == "pack_order":
        return _enum_or_none(PackOrder, value)
    if key in (
        "use_gitignore",
        "use_ignore_file",
        "hidden",
        "strict",
        "code_fences",
        "xml_wrap",
        "tags_wrap",
        "mouse",
    ):
        return value if isinstance(value, bool) else None
    return value if isinstance(value, str) else None


def _enum_or_none(enum_cls, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def global_config_path(home: Path | None = None) -> Path:
    home = home if home is not None else Path.home()
    return home / GLOBAL_DIR_NAME / GLOBAL_CONFIG_FILE_NAME


def load_global_config(home: Path | None = None) -> ConfigLayer:
    """Load `~/.ctxpack/config.json`."""
    return ConfigLayer.from_mapping(_read_json(global_config_path(home)) or {})


def load_package_config(cwd: Path) -> ConfigLayer:
    """
    Load configuration embedded in package manifests.

    The `"ctxpack"` key of `package.json` is read first; the
    `[tool.ctxpack]` table of `pyproject.toml` is merged over it.
    """
    package = _read_json(cwd / "package.json")
    from_package = ConfigLayer()
    if isinstance(package, dict):
        from_package = ConfigLayer.from_mapping(package.get(PACKAGE_JSON_KEY) or {})

    from_pyproject = ConfigLayer()
    try:
        with open(cwd / "pyproject.toml", "rb") as f:
            pyproject = tomllib.load(f)
        tool = pyproject.get("tool")
        table = tool.get(PACKAGE_JSON_KEY) if isinstance(tool, dict) else None
        if isinstance(table, dict):
            from_pyproject = ConfigLayer.from_mapping(table)
    except (OSError, ValueError):
        # TOMLDecodeError and UnicodeDecodeError are both ValueErrors
        pass

    return merge_layers(from_package, from_pyproject)


def load_project_config(cwd: Path) -> ConfigLayer:
    """Load `.ctxpackrc.json` from the scan root."""
    return ConfigLayer.from_mapping(_read_json(cwd / PROJECT_CONFIG_FILE_NAME) or {})


def find_profile(cwd: Path, name: str, home: Path | None = None) -> ConfigLayer | None:
    """
    Look up a named profile.

    The project rc file is searched first, then the package config, then the
    global config. Returns None when no layer defines the profile.
    """
    for layer in (
        load_project_config(cwd),
        load_package_config(cwd),
        load_global_config(home),
    ):
        if name in layer.profiles:
            return layer.profiles[name]
    return None


def merge_layers(*layers: ConfigLayer | None) -> ConfigLayer:
    """
    Merge layers from lowest to highest precedence.

    Scalar keys are last-writer-wins. List keys are replaced outright by the
    highest-precedence layer that sets a non-empty list. Profiles are merged
    by name.
    """
    merged = ConfigLayer()
    for layer in layers:
        if layer is None:
            continue
        for f in fields(ConfigLayer):
            value = getattr(layer, f.name)
            if f.name == "profiles":
                merged.profiles.update(value)
            elif f.name in _LIST_KEYS:
                if value:
                    setattr(merged, f.name, list(value))
            elif value is not None:
                setattr(merged, f.name, value)
    return merged


def read_prompt(cwd: Path, layer: ConfigLayer) -> str | None:
    """
    Resolve the instruction text for a merged layer.

    A readable `prompt_file` (relative paths resolve against `cwd`) wins over
    `prompt`; an unreadable one falls back to the text.
    """
    if layer.prompt_file:
        path = Path(layer.prompt_file)
        if not path.is_absolute():
            path = cwd / path
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, ValueError):
            pass
    return layer.prompt or None


def resolve_policy(
    cwd: Path,
    flags: ConfigLayer | None = None,
    profile: str | None = None,
    home: Path | None = None,
) -> SelectionPolicy:
    """
    Build the effective SelectionPolicy for a run.

    Args:
        cwd: Scan root.
        flags: Options given on the command line.
        profile: Optional profile name.
        home: Home directory override for the global config.

    Returns:
        A fully populated SelectionPolicy.
    """
    cwd = Path(cwd).resolve()
    profile_layer = find_profile(cwd, profile, home) if profile else None
    merged = merge_layers(
        load_global_config(home),
        load_package_config(cwd),
        load_project_config(cwd),
        profile_layer,
        flags,
    )

    def pick(value, default):
        return default if value is None else value

    return SelectionPolicy(
        cwd=cwd,
        include=tuple(merged.include or DEFAULT_INCLUDE),
        exclude=tuple(merged.exclude or DEFAULT_EXCLUDE),
        use_gitignore=pick(merged.use_gitignore, True),
        use_ignore_file=pick(merged.use_ignore_file, True),
        hidden=pick(merged.hidden, False),
        max_bytes_per_file=pick(merged.max_bytes_per_file, DEFAULT_MAX_BYTES_PER_FILE),
        model=pick(merged.model, DEFAULT_MODEL),
        encoding=merged.encoding,
        format=pick(merged.format, OutputFormat.MARKDOWN),
        max_tokens=merged.max_tokens,
        pack_order=pick(merged.pack_order, PackOrder.SMALL_FIRST),
        strict=pick(merged.strict, True),
        code_fences=pick(merged.code_fences, True),
        header=merged.header,
        block_separator=pick(merged.block_separator, DEFAULT_BLOCK_SEPARATOR),
        xml_wrap=pick(merged.xml_wrap, False),
        tags_wrap=pick(merged.tags_wrap, True),
        prompt_text=read_prompt(cwd, merged),
    )


def default_config() -> dict[str, Any]:
    """Return the defaults in the camelCase shape used by config files."""
    return {
        "include": list(DEFAULT_INCLUDE),
        "exclude": list(DEFAULT_EXCLUDE),
        "useGitignore": True,
        "useIgnoreFile": True,
        "hidden": False,
        "maxBytesPerFile": DEFAULT_MAX_BYTES_PER_FILE,
        "model": DEFAULT_MODEL,
        "format": str(OutputFormat.MARKDOWN),
        "packOrder": str(PackOrder.SMALL_FIRST),
        "strict": True,
        "codeFences": True,
        "tagsWrap": True,
        "xmlWrap": False,
        "profiles": {},
    }


def write_default_config(path: Path, writer: FileWriter | None = None) -> Path:
    """
    Write the default configuration as pretty-printed JSON.

    The parent directory is created if needed (for `~/.ctxpack`). A writer can
    be passed in place of the filesystem writer for `path`.

    Raises:
        InvalidFilePathError: If the parent directory is not writable.
        FileWriteError: If writing fails.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteError(
            message=f"Failed to create directory: {path.parent}",
            file_path=str(path),
            original_exception=e,
        ) from e
    if writer is None:
        writer = FilesystemFileWriter.from_path(path)
    writer.write_file(json.dumps(default_config(), indent=2) + "\n")
    return path

