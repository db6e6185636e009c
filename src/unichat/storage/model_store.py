from __future__ import annotations
import json
import logging
import random
import string
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from unichat.core.errors import ConfigError
from unichat.core.models import ModelConfig
from unichat.core.ports import KeyValueStore

logger = logging.getLogger(__name__)

MODELS_KEY = "ai-chat-models"
ACTIVE_MODEL_KEY = "ai-chat-active-model"
API_KEY_MASK = "***"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def _new_id(now: int) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"model-{now}-{suffix}"


class ModelStore:
    """
    Model configurations as a JSON array under one key, the active model id
    under a second. ``namespace`` is prefixed to both keys.
    """

    def __init__(self, kv: KeyValueStore, namespace: str = ""):
        self.kv = kv
        self.models_key = f"{namespace}{MODELS_KEY}"
        self.active_key = f"{namespace}{ACTIVE_MODEL_KEY}"

    # ----- raw records -----

    def _records(self) -> List[Dict[str, Any]]:
        raw = self.kv.get(self.models_key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Stored model list is not valid JSON: %s", e)
            return []
        if not isinstance(data, list):
            logger.error("Stored model list is not an array")
            return []
        return [r for r in data if isinstance(r, dict)]

    def _save_records(self, records: List[Dict[str, Any]]) -> None:
        self.kv.set(self.models_key, json.dumps(records, ensure_ascii=False))

    # ----- queries -----

    def list(self) -> List[ModelConfig]:
        out = []
        for rec in self._records():
            try:
                out.append(ModelConfig.model_validate(rec))
            except ValidationError as e:
                logger.warning("Skipping invalid model config %r: %s", rec.get("id"), e.errors()[0]["msg"])
        return out

    def get(self, model_id: str) -> Optional[ModelConfig]:
        return next((m for m in self.list() if m.id == model_id), None)

    def exists(self, model_name: str, api_url: str) -> bool:
        return any(m.model_name == model_name and m.api_url == api_url for m in self.list())

    def enabled(self) -> List[ModelConfig]:
        return [m for m in self.list() if m.enabled]

    # ----- mutations -----

    def add(self, fields: Dict[str, Any]) -> ModelConfig:
        """Store a new config; id and timestamps are assigned here."""
        now = _now_ms()
        record = {k: v for k, v in fields.items() if k not in ("id", "createdAt", "updatedAt", "created_at", "updated_at")}
        record.update(id=_new_id(now), createdAt=now, updatedAt=now)
        try:
            model = ModelConfig.model_validate(record)
        except ValidationError as e:
            raise ConfigError(f"Invalid model config: {e}") from e
        records = self._records()
        records.append(model.to_record())
        self._save_records(records)
        return model

    def update(self, model_id: str, updates: Dict[str, Any]) -> Optional[ModelConfig]:
        records = self._records()
        for i, rec in enumerate(records):
            if rec.get("id") != model_id:
                continue
            merged = {
                **ModelConfig.model_validate(rec).model_dump(by_alias=True),
                **{_camel(k): v for k, v in updates.items()},
                "id": model_id,
                "updatedAt": _now_ms(),
            }
            try:
                model = ModelConfig.model_validate(merged)
            except ValidationError as e:
                raise ConfigError(f"Invalid update for model '{model_id}': {e}") from e
            records[i] = model.to_record()
            self._save_records(records)
            return model
        return None

    def delete(self, model_id: str) -> None:
        self._save_records([r for r in self._records() if r.get("id") != model_id])
        if self.active_id() == model_id:
            self.clear_active()

    # ----- active model -----

    def set_active(self, model_id: str) -> None:
        self.kv.set(self.active_key, model_id)

    def active_id(self) -> Optional[str]:
        return self.kv.get(self.active_key)

    def active(self) -> Optional[ModelConfig]:
        model_id = self.active_id()
        return self.get(model_id) if model_id else None

    def clear_active(self) -> None:
        self.kv.delete(self.active_key)

    # ----- import / export -----

    def export_json(self) -> str:
        """Shareable dump: every apiKey replaced by a fixed mask."""
        safe = [{**rec, "apiKey": API_KEY_MASK} for rec in self._records()]
        return json.dumps(safe, ensure_ascii=False, indent=2)

    def import_json(self, text: str) -> bool:
        """Replace all configs. Invalid input leaves the store untouched."""
        try:
            data = json.loads(text)
            if not isinstance(data, list):
                raise ConfigError("Model import must be a JSON array")
            models = [ModelConfig.model_validate(rec) for rec in data]
        except (ValueError, ValidationError) as e:
            logger.error("Model import failed: %s", e)
            return False
        self._save_records([m.to_record() for m in models])
        return True
