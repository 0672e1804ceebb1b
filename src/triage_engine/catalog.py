"""CatalogStore — loads question catalogs and ESI reference data from ``v1/``.

This is the single source of truth for questionnaire data at runtime.  The
store is loaded once at startup and hands out immutable
:class:`QuestionCatalog` objects by name.

Layout::

    v1/
      const/esi_levels.yaml        — the five ESI levels
      catalogs/<name>.yaml         — one questionnaire per file

Usage::

    store = CatalogStore()          # defaults to v1/ relative to repo root
    store.load()                    # parse all YAML files

    catalog = store.get_catalog("vitals")
    first = catalog[0]
    pain = catalog.get("painLevel")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from triage_engine.models.question import Question
from triage_engine.models.schema import CatalogDocument, EsiLevel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# QuestionCatalog
# ---------------------------------------------------------------------------

class QuestionCatalog:
    """An ordered, immutable questionnaire.

    Question order is significant: it is the presentation order and the
    order the assessment engine walks.
    """

    def __init__(
        self,
        *,
        name: str,
        title: str,
        policy: str,
        questions: list[Question],
        description: str | None = None,
    ) -> None:
        if not questions:
            raise ValueError(f"Catalog '{name}' has no questions")
        self.name = name
        self.title = title
        self.policy = policy
        self.description = description
        self._questions: tuple[Question, ...] = tuple(questions)
        self._index: dict[str, int] = {}
        for i, q in enumerate(self._questions):
            if q.qid in self._index:
                raise ValueError(f"Duplicate qid '{q.qid}' in catalog '{name}'")
            self._index[q.qid] = i

    @classmethod
    def from_document(cls, doc: CatalogDocument) -> "QuestionCatalog":
        return cls(
            name=doc.name,
            title=doc.title,
            policy=doc.policy,
            questions=list(doc.questions),
            description=doc.description,
        )

    def __len__(self) -> int:
        return len(self._questions)

    def __getitem__(self, index: int) -> Question:
        return self._questions[index]

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __contains__(self, qid: object) -> bool:
        return qid in self._index

    @property
    def qids(self) -> list[str]:
        """Question ids in catalog order."""
        return [q.qid for q in self._questions]

    def get(self, qid: str) -> Question:
        """Look up a question by id.

        Raises:
            KeyError: if the qid is not in this catalog.
        """
        return self._questions[self._index[qid]]

    def index_of(self, qid: str) -> int:
        """Return the 0-based position of ``qid``.

        Raises:
            KeyError: if the qid is not in this catalog.
        """
        return self._index[qid]

    def sections(self) -> dict[str | None, list[str]]:
        """Group qids by section, preserving catalog order within each group."""
        grouped: dict[str | None, list[str]] = {}
        for q in self._questions:
            grouped.setdefault(q.section, []).append(q.qid)
        return grouped

    def __repr__(self) -> str:
        return f"QuestionCatalog(name={self.name!r}, policy={self.policy!r}, questions={len(self)})"


# ---------------------------------------------------------------------------
# CatalogStore
# ---------------------------------------------------------------------------

class CatalogStore:
    """Loads all YAML from ``v1/`` and provides typed lookup.

    Attributes populated after :meth:`load`:

        esi_levels — dict[level, EsiLevel]
        catalogs   — dict[name, QuestionCatalog]
    """

    def __init__(self, ruleset_dir: str | Path | None = None) -> None:
        if ruleset_dir is None:
            ruleset_dir = find_repo_root() / "v1"
        self._base = Path(ruleset_dir)

        # Populated by load()
        self.esi_levels: dict[int, EsiLevel] = {}
        self.catalogs: dict[str, QuestionCatalog] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse all YAML files under the ruleset directory into typed models.

        Call this once at startup.  Raises ``FileNotFoundError`` if expected
        YAML files are missing and ``ValueError`` if a file is malformed.
        """
        self._load_constants()
        self._load_catalogs()
        logger.info(
            "CatalogStore loaded: %d ESI levels, %d catalogs (%s)",
            len(self.esi_levels),
            len(self.catalogs),
            ", ".join(sorted(self.catalogs)),
        )

    def _load_constants(self) -> None:
        """Load v1/const/esi_levels.yaml, keyed by level."""
        for raw in load_yaml(self._base / "const" / "esi_levels.yaml"):
            level = EsiLevel(**raw)
            self.esi_levels[level.level] = level

        missing = {1, 2, 3, 4, 5} - set(self.esi_levels)
        if missing:
            raise ValueError(f"esi_levels.yaml is missing levels: {sorted(missing)}")

    def _load_catalogs(self) -> None:
        """Load every v1/catalogs/*.yaml into a QuestionCatalog."""
        catalog_dir = self._base / "catalogs"
        paths = sorted(catalog_dir.glob("*.yaml"))
        if not paths:
            raise FileNotFoundError(f"No catalog YAML files under {catalog_dir}")

        for path in paths:
            raw = load_yaml(path)
            try:
                doc = CatalogDocument(**raw)
            except PydanticValidationError as exc:
                raise ValueError(f"Invalid catalog file {path.name}: {exc}") from exc
            if doc.name in self.catalogs:
                raise ValueError(f"Duplicate catalog name '{doc.name}' in {path.name}")
            self.catalogs[doc.name] = QuestionCatalog.from_document(doc)
            logger.debug("Loaded catalog %s from %s", doc.name, path.name)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_catalog(self, name: str) -> QuestionCatalog:
        """Return a loaded catalog by name.

        Raises:
            KeyError: if no catalog with that name was loaded.
        """
        return self.catalogs[name]

    def resolve_esi(self, level: int) -> dict:
        """Look up an ESI level and return a dict suitable for API responses.

        Returns: {level, label, description, patient_message, color}.
        """
        esi = self.esi_levels[level]
        return esi.model_dump()

    def esi_label(self, level: int) -> str:
        """Display label for an ESI level (``"Unknown"`` for out-of-range values)."""
        esi = self.esi_levels.get(level)
        return esi.label if esi is not None else "Unknown"
