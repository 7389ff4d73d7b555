"""
Aura Frog Project Detection Cache

Caches project detection results (name, type, framework, package manager)
so hooks don't re-sniff the repository on every invocation.

Cache file: <project>/.claude/project-contexts/<name slug>/project-detection.json

Invalidation:
- Cache older than 24 hours
- Key manifest files changed (md5 over file:mtime:size)
- Explicit refresh (force=True)
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from aurafrog.learning.jsonfile import read_json, write_json_atomic

logger = logging.getLogger(__name__)

PROJECT_CONTEXTS_DIR = ".claude/project-contexts"
DETECTION_FILE = "project-detection.json"
CACHE_MAX_AGE_SECONDS = 24 * 60 * 60
CACHE_VERSION = "2.0.0"

KEY_FILES: List[str] = [
    "package.json",
    "composer.json",
    "pubspec.yaml",
    "go.mod",
    "pyproject.toml",
    "requirements.txt",
    "Cargo.toml",
    "project.godot",
    "angular.json",
    "next.config.js",
    "next.config.mjs",
    "next.config.ts",
    "nuxt.config.ts",
    "vite.config.ts",
    "vitest.config.ts",
    "jest.config.js",
    "tsconfig.json",
]

# manifest -> project type, first match wins
PROJECT_TYPES = [
    ("project.godot", "godot"),
    ("pubspec.yaml", "flutter"),
    ("composer.json", "php"),
    ("go.mod", "go"),
    ("Cargo.toml", "rust"),
    ("pyproject.toml", "python"),
    ("requirements.txt", "python"),
    ("package.json", "node"),
]

LOCKFILES = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("package-lock.json", "npm"),
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
    ("composer.lock", "composer"),
]

# dependency name -> framework, checked in order
JS_FRAMEWORKS = [
    ("next", "nextjs"),
    ("nuxt", "nuxt"),
    ("@angular/core", "angular"),
    ("react-native", "react-native"),
    ("vue", "vue"),
    ("svelte", "svelte"),
    ("react", "react"),
    ("@nestjs/core", "nestjs"),
    ("express", "express"),
]

PY_FRAMEWORKS = ["django", "fastapi", "flask"]

_PYPROJECT_NAME = re.compile(r'^\s*name\s*=\s*["\']([^"\']+)["\']', re.MULTILINE)
_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _read_json_file(path: Path) -> Dict[str, Any]:
    return read_json(path, {})


def safe_dir_name(name: str) -> str:
    """Single path component for a project name; never '.', '..' or a separator."""
    slug = _UNSAFE_PATH_CHARS.sub("-", name or "").strip(".-")
    return slug[:100] or "project"


def get_project_name(project_dir: Path) -> str:
    """Name from package.json, composer.json, pyproject.toml, else the directory."""
    project_dir = Path(project_dir).resolve()

    pkg = _read_json_file(project_dir / "package.json")
    if isinstance(pkg.get("name"), str) and pkg["name"]:
        return re.sub(r"^@[^/]+/", "", pkg["name"])

    composer = _read_json_file(project_dir / "composer.json")
    if isinstance(composer.get("name"), str) and composer["name"]:
        return composer["name"].split("/")[-1]

    pyproject = project_dir / "pyproject.toml"
    if pyproject.is_file():
        try:
            match = _PYPROJECT_NAME.search(pyproject.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            match = None
        if match:
            return match.group(1)

    return project_dir.name


def key_files_hash(project_dir: Path) -> str:
    """Quick change fingerprint of manifest files (mtime + size, not content)."""
    parts = []
    for name in KEY_FILES:
        path = Path(project_dir) / name
        try:
            stat = path.stat()
        except OSError:
            continue
        parts.append(f"{name}:{stat.st_mtime}:{stat.st_size}")
    if not parts:
        return "empty"
    return hashlib.md5("|".join(parts).encode("utf-8")).hexdigest()[:12]


def detect_project_type(project_dir: Path) -> Optional[str]:
    for manifest, project_type in PROJECT_TYPES:
        if (Path(project_dir) / manifest).exists():
            return project_type
    return None


def detect_package_manager(project_dir: Path) -> Optional[str]:
    for lockfile, manager in LOCKFILES:
        if (Path(project_dir) / lockfile).exists():
            return manager
    if (Path(project_dir) / "requirements.txt").exists():
        return "pip"
    return None


def detect_framework(project_dir: Path) -> Optional[str]:
    pkg = _read_json_file(Path(project_dir) / "package.json")
    deps: Dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        if isinstance(pkg.get(section), dict):
            deps.update(pkg[section])
    for dep, framework in JS_FRAMEWORKS:
        if dep in deps:
            return framework

    for manifest in ("pyproject.toml", "requirements.txt"):
        path = Path(project_dir) / manifest
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8").lower()
        except (OSError, UnicodeDecodeError):
            continue
        for framework in PY_FRAMEWORKS:
            if re.search(rf"\b{framework}\b", text):
                return framework
    return None


class ProjectCache:
    """Hash-invalidated detection cache for one project directory."""

    def __init__(self, project_dir: Path, max_age: float = CACHE_MAX_AGE_SECONDS):
        self.project_dir = Path(project_dir)
        self.max_age = max_age

    def detection_path(self, project_name: Optional[str] = None) -> Path:
        name = project_name or get_project_name(self.project_dir)
        return self.project_dir / PROJECT_CONTEXTS_DIR / safe_dir_name(name) / DETECTION_FILE

    def is_valid(self, cache: Dict[str, Any]) -> bool:
        timestamp = cache.get("timestamp")
        if not isinstance(timestamp, (int, float)):
            return False
        if time.time() - timestamp > self.max_age:
            return False
        return cache.get("key_files_hash") == key_files_hash(self.project_dir)

    def load(self) -> Optional[Dict[str, Any]]:
        cache = read_json(self.detection_path(), {})
        return cache if cache and self.is_valid(cache) else None

    def save(self, detection: Dict[str, Any]) -> bool:
        name = detection.get("project_name") or get_project_name(self.project_dir)
        payload = dict(detection)
        payload.update({
            "project_name": name,
            "timestamp": time.time(),
            "key_files_hash": key_files_hash(self.project_dir),
            "version": CACHE_VERSION,
        })
        try:
            write_json_atomic(self.detection_path(name), payload)
        except OSError as exc:
            logger.debug("Could not save project detection: %s", exc)
            return False
        return True

    def clear(self) -> bool:
        path = self.detection_path()
        try:
            path.unlink()
        except FileNotFoundError:
            return True
        except OSError:
            return False
        return True

    def detect(self, force: bool = False) -> Dict[str, Any]:
        """Cached detection, re-detecting when stale or forced."""
        if not force:
            cached = self.load()
            if cached is not None:
                return dict(cached, from_cache=True)

        detection = {
            "project_name": get_project_name(self.project_dir),
            "project_type": detect_project_type(self.project_dir),
            "package_manager": detect_package_manager(self.project_dir),
            "framework": detect_framework(self.project_dir),
            "cwd": str(self.project_dir),
            "detected_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        self.save(detection)
        return dict(detection, from_cache=False)


def cached_project_name(project_dir: Path) -> str:
    """Project name for record context, served from the detection cache."""
    try:
        return ProjectCache(project_dir).detect().get("project_name") or Path(project_dir).name
    except (OSError, ValueError, json.JSONDecodeError):
        return Path(project_dir).name
