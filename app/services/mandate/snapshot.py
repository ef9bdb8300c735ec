"""
Validation JSON Schema du snapshot d'options d'une commande sur mandat.

Le snapshot fige codes, quantités et prix au moment de la commande ; il
sert de repli au calcul des quotas tant que les options du tenant ne sont
pas synchronisées.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from app.core.exceptions import ValidationError

SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "json_schemas" / "addons_snapshot_v1.json"


class InvalidSnapshotError(ValidationError):
    """Snapshot d'options non conforme au schéma."""

    def __init__(self, message: str, errors: List[Dict[str, Any]]):
        self.errors = errors
        super().__init__(message)


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(_load_schema())


@lru_cache(maxsize=1)
def _item_validator() -> Draft202012Validator:
    schema = _load_schema()
    return Draft202012Validator({**schema["$defs"]["item"], "$defs": schema["$defs"]})


def snapshot_errors(snapshot: Any) -> List[Dict[str, Any]]:
    """Liste des erreurs (vide si le snapshot est valide)."""
    return [
        {
            "path": ".".join(str(p) for p in err.absolute_path),
            "message": err.message,
        }
        for err in _validator().iter_errors(snapshot)
    ]


def validate_addons_snapshot(snapshot: Any) -> List[Dict[str, Any]]:
    """Valide le snapshot complet ; lève InvalidSnapshotError sinon."""
    errors = snapshot_errors(snapshot)
    if errors:
        raise InvalidSnapshotError(
            f"Snapshot d'options invalide : {len(errors)} erreur(s)",
            errors=errors[:10],
        )
    return snapshot


def is_valid_snapshot_item(item: Any) -> bool:
    return _item_validator().is_valid(item)
