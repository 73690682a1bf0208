from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional

from jsonschema import ValidationError, validate

from ticket_agent.errors import StoreError
from ticket_agent.gates.parsers import load_schema
from ticket_agent.models import ProjectState
from ticket_agent.utils.io import read_json, write_json

logger = logging.getLogger(__name__)


class ProjectStore:
    """One JSON document per project under ``data_dir``.

    Writes replace the whole file. There is no locking: two writers on the
    same id race and the last one wins.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise StoreError(f"Invalid project id: {project_id!r}")
        return self.data_dir / f"{project_id}.json"

    def persist(self, state: ProjectState) -> Path:
        self._ensure_dir()
        payload = state.to_dict()
        validate(instance=payload, schema=load_schema("project_state.schema.json"))
        path = self.path_for(state.id)
        write_json(path, payload)
        logger.info("Saved project %s to %s", state.id, path)
        return path

    def load(self, project_id: str) -> Optional[ProjectState]:
        self._ensure_dir()
        path = self.path_for(project_id)
        if not path.exists():
            return None
        try:
            return ProjectState.from_dict(read_json(path))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Project {project_id} is unreadable: {exc}") from exc

    def exists(self, project_id: str) -> bool:
        self._ensure_dir()
        return self.path_for(project_id).exists()

    def project_files(self) -> List[Path]:
        if not self.data_dir.exists():
            return []
        return sorted(self.data_dir.glob("*.json"))

    def iter_projects(self, limit: Optional[int] = None) -> Iterator[ProjectState]:
        """Yield stored projects, skipping files that no longer parse."""
        files = self.project_files()
        for path in files[:limit] if limit is not None else files:
            try:
                yield ProjectState.from_dict(read_json(path))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError) as exc:
                logger.warning("Skipping unreadable project file %s: %s", path, exc)
