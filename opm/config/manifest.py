"""Project manifest (``opm.json``) access.

The manifest declares the project's intent: ``dependencies`` and
``devDependencies`` map package names to specifiers, and ``collections`` maps
package names to the working-copy paths handed to the compiler. Every other
field is owned by other tools and is written back untouched, in its original
key order.
"""

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from opm.core.directory import get_manifest_path
from opm.core.exceptions import ManifestError, ManifestNotFoundError
from opm.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"
COLLECTIONS = "collections"


@dataclass(frozen=True)
class DeclaredDependency:
    """One dependency as written in the manifest."""

    name: str
    specifier: str
    dev: bool = False


class ProjectManifest:
    """
    In-memory view of ``opm.json`` with lossless round-tripping.

    Attributes:
        path: Manifest file path
        data: Parsed JSON object (mutated in place)
    """

    def __init__(self, path: Path, data: dict, raw_text: Optional[str] = None):
        self.path = Path(path)
        self.data = data
        self.raw_text = raw_text
        self._saved = copy.deepcopy(data)
        self._validate()

    @classmethod
    def load(cls, project_root: Path) -> "ProjectManifest":
        """
        Load the manifest of ``project_root``.

        Raises:
            ManifestNotFoundError: If opm.json does not exist
            ManifestError: If opm.json is not a valid JSON object
        """
        path = get_manifest_path(project_root)
        if not path.exists():
            raise ManifestNotFoundError(path)

        raw_text = path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"{path} must contain a JSON object")

        logger.debug(f"Loaded manifest {path}")
        return cls(path, data, raw_text)

    def _validate(self) -> None:
        for key in (DEPENDENCIES, DEV_DEPENDENCIES, COLLECTIONS):
            section = self.data.get(key)
            if section is None:
                continue
            if not isinstance(section, dict):
                raise ManifestError(f"'{key}' in {self.path} must be an object")
            for name, value in section.items():
                if not isinstance(value, str):
                    raise ManifestError(
                        f"'{key}.{name}' in {self.path} must be a string, got {value!r}"
                    )

    def _section(self, key: str, create: bool = False) -> Dict[str, str]:
        section = self.data.get(key)
        if section is None:
            section = {}
            if create:
                self.data[key] = section
        return section

    @property
    def dependencies(self) -> Dict[str, str]:
        return dict(self._section(DEPENDENCIES))

    @property
    def dev_dependencies(self) -> Dict[str, str]:
        return dict(self._section(DEV_DEPENDENCIES))

    @property
    def collections(self) -> Dict[str, str]:
        return dict(self._section(COLLECTIONS))

    def declared(self) -> List[DeclaredDependency]:
        """
        All declared dependencies in manifest order.

        ``dependencies`` come first, then ``devDependencies``. A name declared
        in both keeps its ``dependencies`` entry.
        """
        result = []
        seen = set()
        for name, spec in self._section(DEPENDENCIES).items():
            result.append(DeclaredDependency(name, spec, dev=False))
            seen.add(name)
        for name, spec in self._section(DEV_DEPENDENCIES).items():
            if name in seen:
                logger.warning(
                    f"{name} is declared in both dependencies and devDependencies; "
                    f"using the dependencies entry"
                )
                continue
            result.append(DeclaredDependency(name, spec, dev=True))
        return result

    def find(self, name: str) -> Optional[DeclaredDependency]:
        """Return the declaration for ``name``, or None."""
        for dep in self.declared():
            if dep.name == name:
                return dep
        return None

    def set_dependency(self, name: str, specifier: str, dev: bool = False) -> None:
        """Declare ``name`` in dependencies or devDependencies."""
        key = DEV_DEPENDENCIES if dev else DEPENDENCIES
        self._section(key, create=True)[name] = specifier

    def remove_dependency(self, name: str) -> bool:
        """Remove ``name`` from both dependency maps. Returns True if found."""
        removed = False
        for key in (DEPENDENCIES, DEV_DEPENDENCIES):
            section = self._section(key)
            if name in section:
                del section[name]
                removed = True
        return removed

    def set_collection(self, name: str, path: str) -> None:
        self._section(COLLECTIONS, create=True)[name] = path

    def remove_collection(self, name: str) -> bool:
        section = self._section(COLLECTIONS)
        if name in section:
            del section[name]
            return True
        return False

    @property
    def is_modified(self) -> bool:
        """Whether the data differs from what was last loaded or saved."""
        return self.data != self._saved

    def dumps(self) -> str:
        return json.dumps(self.data, indent=2, ensure_ascii=False) + "\n"

    def save(self) -> None:
        """Write the manifest atomically."""
        self._validate()
        text = self.dumps()
        atomic_write(self.path, text)
        self.raw_text = text
        self._saved = copy.deepcopy(self.data)
        logger.debug(f"Manifest saved: {self.path}")

    def save_if_modified(self) -> bool:
        """Write the manifest only if something changed. Returns True if written."""
        if not self.is_modified:
            return False
        self.save()
        return True

    def restore(self, raw_text: Optional[str]) -> None:
        """Put previously read file content back on disk."""
        if raw_text is None:
            return
        atomic_write(self.path, raw_text)
        logger.debug(f"Manifest restored: {self.path}")
