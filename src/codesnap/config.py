"""Static pattern catalog: what is binary, what is text, what matters most.

Everything here is pure data plus a few lookup helpers. Discovery, reading,
scoring and rendering all classify files through these tables, so adding a
language or a priority file is a one-line change in this module.
"""

from __future__ import annotations

import fnmatch
from enum import StrEnum, auto
from pathlib import PurePosixPath


class FileType(StrEnum):
    """Categorization of file types for fencing and processing purposes.

    This is a heuristic classification based on file extensions only.
    """

    TEXT = auto()
    BINARY = auto()
    IMAGE = auto()
    PYTHON = auto()
    RUBY = auto()
    TOML = auto()
    JSON = auto()
    MARKDOWN = auto()
    RST = auto()
    YAML = auto()
    HTML = auto()
    CSS = auto()
    SCSS = auto()
    LESS = auto()
    JAVASCRIPT = auto()
    JSX = auto()
    TYPESCRIPT = auto()
    TSX = auto()
    VUE = auto()
    SVELTE = auto()
    BASH = auto()
    FISH = auto()
    POWERSHELL = auto()
    RUST = auto()
    GO = auto()
    PHP = auto()
    SQL = auto()
    JAVA = auto()
    KOTLIN = auto()
    CSHARP = auto()
    SWIFT = auto()
    C = auto()
    CPP = auto()
    XML = auto()
    INI = auto()
    HCL = auto()
    DOCKERFILE = auto()
    MAKEFILE = auto()
    OTHER = auto()


EXT2LANG: dict[str, FileType] = {
    ".bash": FileType.BASH,
    ".bmp": FileType.IMAGE,
    ".c": FileType.C,
    ".cc": FileType.CPP,
    ".cfg": FileType.INI,
    ".cjs": FileType.JAVASCRIPT,
    ".conf": FileType.INI,
    ".cpp": FileType.CPP,
    ".cs": FileType.CSHARP,
    ".css": FileType.CSS,
    ".cxx": FileType.CPP,
    ".fish": FileType.FISH,
    ".gif": FileType.IMAGE,
    ".go": FileType.GO,
    ".h": FileType.C,
    ".hcl": FileType.HCL,
    ".hpp": FileType.CPP,
    ".htm": FileType.HTML,
    ".html": FileType.HTML,
    ".ini": FileType.INI,
    ".java": FileType.JAVA,
    ".jpeg": FileType.IMAGE,
    ".jpg": FileType.IMAGE,
    ".js": FileType.JAVASCRIPT,
    ".json": FileType.JSON,
    ".jsx": FileType.JSX,
    ".kt": FileType.KOTLIN,
    ".less": FileType.LESS,
    ".markdown": FileType.MARKDOWN,
    ".md": FileType.MARKDOWN,
    ".mjs": FileType.JAVASCRIPT,
    ".php": FileType.PHP,
    ".png": FileType.IMAGE,
    ".ps1": FileType.POWERSHELL,
    ".py": FileType.PYTHON,
    ".rb": FileType.RUBY,
    ".rs": FileType.RUST,
    ".rst": FileType.RST,
    ".sass": FileType.SCSS,
    ".scss": FileType.SCSS,
    ".sh": FileType.BASH,
    ".sql": FileType.SQL,
    ".svelte": FileType.SVELTE,
    ".svg": FileType.IMAGE,
    ".swift": FileType.SWIFT,
    ".tf": FileType.HCL,
    ".tfvars": FileType.HCL,
    ".toml": FileType.TOML,
    ".ts": FileType.TYPESCRIPT,
    ".tsx": FileType.TSX,
    ".txt": FileType.TEXT,
    ".vue": FileType.VUE,
    ".webp": FileType.IMAGE,
    ".xml": FileType.XML,
    ".yaml": FileType.YAML,
    ".yml": FileType.YAML,
    ".zsh": FileType.BASH,
}

NAME2LANG: dict[str, FileType] = {
    "dockerfile": FileType.DOCKERFILE,
    "containerfile": FileType.DOCKERFILE,
    "makefile": FileType.MAKEFILE,
}

_FENCE_LANGUAGE: dict[FileType, str] = {
    FileType.PYTHON: "python",
    FileType.RUBY: "ruby",
    FileType.TOML: "toml",
    FileType.JSON: "json",
    FileType.MARKDOWN: "markdown",
    FileType.RST: "rst",
    FileType.YAML: "yaml",
    FileType.HTML: "html",
    FileType.CSS: "css",
    FileType.SCSS: "scss",
    FileType.LESS: "less",
    FileType.JAVASCRIPT: "javascript",
    FileType.JSX: "jsx",
    FileType.TYPESCRIPT: "typescript",
    FileType.TSX: "tsx",
    FileType.VUE: "vue",
    FileType.SVELTE: "svelte",
    FileType.BASH: "bash",
    FileType.FISH: "fish",
    FileType.POWERSHELL: "powershell",
    FileType.RUST: "rust",
    FileType.GO: "go",
    FileType.PHP: "php",
    FileType.SQL: "sql",
    FileType.JAVA: "java",
    FileType.KOTLIN: "kotlin",
    FileType.CSHARP: "csharp",
    FileType.SWIFT: "swift",
    FileType.C: "c",
    FileType.CPP: "cpp",
    FileType.XML: "xml",
    FileType.INI: "ini",
    FileType.HCL: "hcl",
    FileType.DOCKERFILE: "dockerfile",
    FileType.MAKEFILE: "makefile",
    FileType.IMAGE: "",
    FileType.BINARY: "",
    FileType.TEXT: "",
    FileType.OTHER: "",
}

# ------------------------------ Ignore lists --------------------------------

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/public/**",
    "**/bin/**",
    "**/binaries/**",
    "**/test/**",
    "**/tests/**",
    "**/spec/**",
    "**/specs/**",
    "**/fixtures/**",
    "**/.git/**",
    "**/.github/**",
    "**/.svn/**",
    "**/coverage/**",
    "**/.gitlab/**",
    "**/.circleci/**",
    "**/docs/**",
    "**/doc/**",
    "**/examples/**",
    "**/vendor/**",
    "**/third-party/**",
    "**/external/**",
    "**/libs/**",
    "**/assets/**",
    "**/static/**",
    "**/images/**",
    "**/img/**",
    "**/videos/**",
    "**/audio/**",
    "**/fonts/**",
    "**/locales/**",
    "**/i18n/**",
    "**/l10n/**",
    "**/generated/**",
    "**/auto-generated/**",
    "**/gen/**",
    "**/.cache/**",
    "**/cache/**",
    "**/.terraform/**",
    "**/.next/**",
    "**/.nuxt/**",
    "**/.vercel/**",
    "**/.idea/**",
    "**/.vscode/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/venv/**",
    "**/.mypy_cache/**",
    "**/.pytest_cache/**",
    "**/.ruff_cache/**",
    "**/.DS_Store",
)

VCS_DIRECTORIES: frozenset[str] = frozenset({".git", ".svn", ".hg", ".bzr"})

MAX_WALK_DEPTH = 10

# ----------------------------- Extension sets -------------------------------

FILE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "images": (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".ico", ".svg", ".webp"),
    "audio": (".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a"),
    "video": (".mp4", ".webm", ".avi", ".mov", ".wmv", ".flv", ".mkv"),
    "compiled": (".dll", ".so", ".dylib", ".a", ".lib", ".obj", ".o", ".class", ".pyc", ".pyo", ".exe"),
    "compressed": (".zip", ".tar", ".gz", ".7z", ".rar", ".bz2", ".xz"),
    "documents": (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx"),
    "binary_data": (".db", ".sqlite", ".sqlite3", ".mdb", ".dat", ".bin"),
    "fonts": (".ttf", ".otf", ".woff", ".woff2", ".eot"),
    "disk_images": (".dmg", ".iso", ".img"),
    "minified": (".min.js", ".min.css", ".map"),
}

BINARY_EXTENSIONS: frozenset[str] = frozenset(ext for exts in FILE_CATEGORIES.values() for ext in exts)

CODE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "javascript": (".js", ".jsx", ".ts", ".tsx", ".vue", ".mjs", ".cjs"),
    "backend": (".py", ".rb", ".go", ".java", ".php", ".rs", ".c", ".cpp", ".h", ".cs", ".swift", ".kt"),
    "frontend": (".html", ".css", ".scss", ".sass", ".less", ".svelte"),
    "config": (".json", ".yml", ".yaml", ".toml", ".xml", ".ini", ".env.example", ".env.sample"),
    "documentation": (".md", ".markdown", ".txt", ".rst"),
    "shell": (".sh", ".bash", ".zsh", ".fish", ".ps1"),
}

DEFAULT_INCLUDE_EXTENSIONS: tuple[str, ...] = tuple(ext for exts in CODE_CATEGORIES.values() for ext in exts)

EXPANDED_CODE_EXTENSIONS: tuple[str, ...] = (
    ".tf",
    ".tfvars",
    ".hcl",
    ".tpl",
    ".tmpl",
    ".j2",
    ".proto",
    ".graphql",
    ".gql",
    ".dart",
    ".scala",
    ".lua",
    ".ex",
    ".exs",
    ".erl",
    ".hs",
    ".clj",
    ".elm",
    ".r",
    ".jl",
    ".cfg",
    ".conf",
)

DOC_EXTENSIONS: frozenset[str] = frozenset(CODE_CATEGORIES["documentation"])

INFRA_EXTENSIONS: tuple[str, ...] = (
    ".tf",
    ".tfvars",
    ".hcl",
    ".yaml",
    ".yml",
    ".json",
    ".tpl",
    ".j2",
    "dockerfile",
)

# ------------------------------ Filename sets -------------------------------

CONFIG_FILE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "package_managers": (
        "package.json",
        "composer.json",
        "go.mod",
        "Cargo.toml",
        "Gemfile",
        "requirements.txt",
        "pyproject.toml",
        "build.gradle",
        "pom.xml",
    ),
    "build_config": (
        "tsconfig.json",
        "webpack.config.js",
        "rollup.config.js",
        "vite.config.js",
        "jest.config.js",
        "babel.config.js",
        ".eslintrc",
        ".eslintrc.js",
        ".eslintrc.json",
    ),
    "containerization": ("docker-compose.yml", "Dockerfile", "kubernetes.yaml", "k8s.yaml"),
    "project_info": ("README.md", "CONTRIBUTING.md", "LICENSE", "CHANGELOG.md"),
    "version_control": (".gitignore", ".gitattributes"),
    "entry_points": (
        "main.js",
        "index.js",
        "app.js",
        "server.js",
        "main.py",
        "app.py",
        "__main__.py",
        "Main.java",
        "Program.cs",
        "main.go",
    ),
}

DEFAULT_INCLUDE_FILENAMES: tuple[str, ...] = tuple(
    name for names in CONFIG_FILE_CATEGORIES.values() for name in names
)

DEFAULT_EXCLUDE_FILENAMES: tuple[str, ...] = (
    # lock files
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "composer.lock",
    "Cargo.lock",
    "Gemfile.lock",
    "poetry.lock",
    "uv.lock",
    # minified / bundled
    "*.min.js",
    "*.min.css",
    "*.bundle.js",
    "*.bundle.css",
    # generated code
    "*.pb",
    "*.d.ts",
    "*.generated.*",
    # large data
    "*.sql",
    "*.dump",
    "*.bak",
)

NO_EXTENSION_IMPORTANT_FILES: tuple[str, ...] = (
    "Dockerfile",
    "Containerfile",
    "Makefile",
    "Jenkinsfile",
    "Procfile",
    "Vagrantfile",
    "Rakefile",
    "Gemfile",
    "Brewfile",
    "Justfile",
)

HIGH_PRIORITY_FILES: tuple[str, ...] = (
    "package.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
    "Cargo.toml",
    "go.mod",
    "Gemfile",
    "composer.json",
    "pom.xml",
    "build.gradle",
    "tsconfig.json",
    "Dockerfile",
    "docker-compose.yml",
    "docker-compose.yaml",
    "Makefile",
    "README.md",
    "*.config.js",
    "*.config.ts",
    ".env.example",
)

ENTRY_POINT_PATTERNS: tuple[str, ...] = (
    "index.*",
    "main.*",
    "app.*",
    "server.*",
    "src/index.*",
    "src/main.*",
    "src/app.*",
    "src/server.*",
    "cmd/*/main.*",
    "__main__.py",
    "*/__main__.py",
    "manage.py",
    "wsgi.py",
    "asgi.py",
)

IMPORTANT_FOLDERS: tuple[str, ...] = (
    "src/",
    "lib/",
    "app/",
    "api/",
    "core/",
    "server/",
    "cmd/",
    "pkg/",
    "internal/",
    "components/",
    "services/",
    "models/",
    "controllers/",
    "routes/",
    "config/",
)

README_NAMES: frozenset[str] = frozenset({"readme.md", "contributing.md", "setup.md"})

# --------------------------- Size thresholds --------------------------------

HARD_MAX_FILE_SIZE = 500 * 1024
SMALL_FILE_PREFERENCE_THRESHOLD = 50 * 1024
SNIFF_MAX_FILE_SIZE = 100 * 1024
SNIFF_SAMPLE_BYTES = 500
SNIFF_LIMIT = 100
TOP_K = 10
REDUCED_FOOTPRINT = 1500
CHARS_PER_TOKEN = 4


def guess_file_type(path: str | PurePosixPath) -> FileType:
    """Heuristic guess of file type based on name, then extension.

    Args:
        path (str | PurePosixPath): The file path to guess the type for.

    Returns:
        FileType: The guessed file type, or FileType.OTHER if unknown.
    """
    p = PurePosixPath(path)
    by_name = NAME2LANG.get(p.name.lower())
    if by_name is not None:
        return by_name
    return EXT2LANG.get(p.suffix.lower(), FileType.OTHER)


def guess_language(file_type: FileType) -> str:
    """Get the suggested code fence language for a given file type.

    Args:
        file_type (FileType): The categorized file type.

    Returns:
        str: The suggested language name for code fences, or empty string if none.
    """
    return _FENCE_LANGUAGE.get(file_type, "")


def is_binary_path(path: str) -> bool:
    """Return True when the path carries a known binary extension (e.g. `.png`, `.min.js`)."""
    name = PurePosixPath(path).name.lower()
    return any(name.endswith(ext) for ext in BINARY_EXTENSIONS)


def is_high_priority_name(basename: str) -> bool:
    """Return True when `basename` is, or matches a glob in, HIGH_PRIORITY_FILES."""
    return basename in HIGH_PRIORITY_FILES or any(fnmatch.fnmatchcase(basename, pat) for pat in HIGH_PRIORITY_FILES)


def is_entry_point(rel: str) -> bool:
    """Return True when the relative path matches a canonical entry-point pattern."""
    return any(fnmatch.fnmatchcase(rel, pat) for pat in ENTRY_POINT_PATTERNS)


def in_important_folder(rel: str) -> bool:
    """Return True when the relative path lives under a conventionally important top-level folder."""
    return any(rel.startswith(folder) for folder in IMPORTANT_FOLDERS)
