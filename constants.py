"""
Application-wide constants and configuration mappings.

This module defines the defaults and lookup tables used throughout the ctxpack
CLI application. It includes the known-binary extension table used by the
classifier, the extension-to-language table used for code fences, the default
include/exclude globs, and the names of the tool's ignore and config files.
"""

from typing import Final, Mapping


APP_NAME: Final[str] = "ctxpack"
APP_VERSION: Final[str] = "0.1.0"

# Tool-specific ignore file, read from the project root and from the
# user-global config directory (~/.ctxpack/.ctxpackignore).
IGNORE_FILE_NAME: Final[str] = ".ctxpackignore"
GLOBAL_DIR_NAME: Final[str] = ".ctxpack"
GLOBAL_CONFIG_FILE_NAME: Final[str] = "config.json"
PROJECT_CONFIG_FILE_NAME: Final[str] = ".ctxpackrc.json"
PACKAGE_JSON_KEY: Final[str] = "ctxpack"
PROMPT_FILE_EXTENSIONS: Final[frozenset[str]] = frozenset({".md", ".txt", ".prompt"})

DEFAULT_INCLUDE: Final[tuple[str, ...]] = ("**/*",)
DEFAULT_EXCLUDE: Final[tuple[str, ...]] = (
    "**/{node_modules,dist,build,.git,.next,.cache,coverage,__pycache__,.venv}/**",
    f"**/{IGNORE_FILE_NAME}",
    "**/*.{png,jpg,jpeg,gif,webp,svg,ico,bmp,pdf,zip,tgz,gz,rar,7z,mp3,mp4,ogg,webm,avi,mov,exe,dll,dylib,so,wasm,woff,woff2,ttf,eot}",
    "**/*.min.{js,css}",
    "**/*.lock",
    "**/*.log",
)
DEFAULT_MAX_BYTES_PER_FILE: Final[int] = 512_000
DEFAULT_MODEL: Final[str] = "gpt-4o-mini"
DEFAULT_ENCODING: Final[str] = "o200k_base"
DEFAULT_BLOCK_SEPARATOR: Final[str] = "\n\n"

DEFAULT_SCAN_CONCURRENCY: Final[int] = 16
MAX_SCAN_CONCURRENCY: Final[int] = 64
DEFAULT_RESCAN_DEBOUNCE_SECONDS: Final[float] = 0.15

# Extra tokens reserved per markdown file on top of the heading and fence
# markers, which tokenize differently once content sits between them.
MARKDOWN_SLACK_TOKENS: Final[int] = 12
# Blank lines separating the instruction blocks from the body.
PROMPT_SEPARATOR_TOKENS: Final[int] = 2

# Extensions (lowercase, no leading dot) that are skipped without being
# opened: images, archives, executables, audio/video, fonts, wasm, and other
# well-known binary containers.
BINARY_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        # images
        "png", "jpg", "jpeg", "gif", "bmp", "ico", "icns", "webp", "tif",
        "tiff", "psd", "ai", "heic", "heif", "avif", "jxl", "raw", "cr2",
        "nef", "dng", "xcf", "eps", "tga", "pbm", "pgm", "ppm", "dds",
        # archives and packages
        "zip", "tar", "gz", "tgz", "bz2", "tbz2", "xz", "txz", "lz", "lzma",
        "zst", "7z", "rar", "cab", "arj", "cpio", "iso", "dmg", "img", "jar",
        "war", "ear", "apk", "aar", "deb", "rpm", "msi", "pkg", "whl", "egg",
        "nupkg", "xpi", "crx", "vsix",
        # executables and object code
        "exe", "dll", "so", "dylib", "a", "lib", "o", "obj", "bin", "elf",
        "class", "pyc", "pyo", "pyd", "node", "wasm", "out", "com", "sys",
        # audio
        "mp3", "wav", "flac", "aac", "ogg", "oga", "opus", "m4a", "wma",
        "aiff", "aif", "mid", "midi", "amr",
        # video
        "mp4", "m4v", "mkv", "mov", "avi", "wmv", "flv", "webm", "mpg",
        "mpeg", "3gp", "ogv",
        # fonts
        "ttf", "otf", "woff", "woff2", "eot", "fon", "pfb",
        # documents and databases
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "odt", "ods",
        "odp", "epub", "mobi", "sqlite", "sqlite3", "db", "mdb", "accdb",
        "parquet", "avro", "orc", "feather", "npy", "npz", "pkl", "pickle",
        "h5", "hdf5", "pt", "pth", "onnx", "tflite", "safetensors",
        # misc
        "swf", "blend", "fbx", "glb", "3ds", "dwg", "dxf", "sketch", "fig",
    }
)

# Extension (lowercase, no dot) -> code fence language tag.
EXT_TO_LANGUAGE: Final[Mapping[str, str]] = {
    "ts": "ts",
    "tsx": "tsx",
    "js": "js",
    "cjs": "js",
    "mjs": "js",
    "jsx": "jsx",
    "json": "json",
    "md": "md",
    "sh": "bash",
    "bash": "bash",
    "zsh": "bash",
    "ps1": "powershell",
    "py": "python",
    "pyi": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "kt": "kotlin",
    "swift": "swift",
    "php": "php",
    "scala": "scala",
    "sql": "sql",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
    "ini": "ini",
    "dockerfile": "dockerfile",
    "c": "c",
    "h": "c",
    "cc": "cpp",
    "cpp": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "cs": "csharp",
    "css": "css",
    "scss": "scss",
    "less": "less",
    "html": "html",
    "xml": "xml",
    "txt": "text",
    "env": "dotenv",
}

# Files recognized by name when their extension gives no language.
FILENAME_TO_LANGUAGE: Final[Mapping[str, str]] = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
}
