"""
Step Context - Catalogue of wizard steps and document rules.
This module loads the step order, the backend step id table and the
per-document accept rules from kyc_steps.json.
"""

import json
from pathlib import Path
from typing import Optional
from functools import lru_cache

from .kyc_schema import (
    Step,
    StepId,
    DocumentType,
    DocumentSide,
    MediaKind,
    UploadState,
)


def get_config_path() -> Path:
    """Get the path to the config directory."""
    return Path(__file__).parent


@lru_cache(maxsize=1)
def load_step_config() -> dict:
    """
    Load the step configuration from JSON file.
    Cached for performance.
    """
    config_path = get_config_path() / "kyc_steps.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Step config not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def get_steps() -> tuple[Step, ...]:
    """All wizard steps in order."""
    config = load_step_config()
    return tuple(Step(**step) for step in config["steps"])


def get_step_order() -> list[StepId]:
    return [step.id for step in get_steps()]


def get_step(step_id: StepId) -> Step:
    for step in get_steps():
        if step.id == step_id:
            return step
    raise KeyError(f"Unknown step: {step_id}")


def map_backend_step(backend_id: Optional[str]) -> Optional[StepId]:
    """
    Translate a backend step id (e.g. 'pan_upload') to a client StepId.
    Unknown ids map to None.
    """
    if not backend_id:
        return None
    client_id = load_step_config()["backend_steps"].get(backend_id)
    return StepId(client_id) if client_id else None


def get_required_documents(step_id: StepId) -> list[DocumentType]:
    """Documents that must be uploaded before leaving a step."""
    docs = load_step_config()["step_documents"].get(StepId(step_id).value, [])
    return [DocumentType(doc) for doc in docs]


def get_step_for_document(doc_type: DocumentType) -> Optional[StepId]:
    for step_id, docs in load_step_config()["step_documents"].items():
        if DocumentType(doc_type).value in docs:
            return StepId(step_id)
    return None


def get_document_spec(doc_type: DocumentType) -> dict:
    """
    Get the rules for a document type.

    Returns:
        dict with: title, media_kind, side (optional), accept {mime: [extensions]}
    """
    documents = load_step_config()["documents"]
    key = DocumentType(doc_type).value
    if key not in documents:
        raise KeyError(f"Unknown document type: {doc_type}")
    return documents[key]


def get_high_risk_countries() -> list[str]:
    return list(load_step_config().get("high_risk_countries", []))


def new_upload_states() -> dict[DocumentType, UploadState]:
    """Fresh, empty upload state for every document type."""
    states = {}
    for doc_type in DocumentType:
        spec = get_document_spec(doc_type)
        side = spec.get("side")
        states[doc_type] = UploadState(
            media_kind=MediaKind(spec["media_kind"]),
            side=DocumentSide(side) if side else None,
        )
    return states
