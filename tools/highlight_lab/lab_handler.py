from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

from lab_config import DATASET_DIR, LABEL_LOG_MAX, LABEL_LOG_NAME
from highlight_dataset import (
    DatasetError,
    dataset_files,
    find_sample_path,
    groups_to_payload,
    ingredient_groups_from_payload,
    instruction_groups_from_payload,
    load_highlight_sample,
    save_highlight_sample,
)
from highlight_evaluation import predict_sample
from ingredient_matcher import (
    MatcherOptions,
    map_ingredients_to_steps,
    normalize_ingredient_groups,
    normalize_instruction_groups,
)

logger = logging.getLogger(__name__)


def _json_response(handler: BaseHTTPRequestHandler, payload: dict[str, Any], status: int = 200) -> None:
    body = json.dumps(payload).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _read_json(handler: BaseHTTPRequestHandler) -> dict[str, Any]:
    length = int(handler.headers.get("Content-Length", "0"))
    raw = handler.rfile.read(length)
    if not raw:
        return {}
    payload = json.loads(raw.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def _load_label_log(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Label log %s is unreadable; starting a new one", path)
        return []
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def append_label_log(dataset_dir: Path, sample_id: str) -> None:
    path = dataset_dir / LABEL_LOG_NAME
    entries = _load_label_log(path)
    entries.append({"id": sample_id, "ts": datetime.now(timezone.utc).isoformat()})
    path.write_text(json.dumps(entries[-LABEL_LOG_MAX:], indent=2) + "\n", encoding="utf-8")


class LabHandler(BaseHTTPRequestHandler):
    dataset_dir: Path = DATASET_DIR

    def log_message(self, fmt: str, *args: Any) -> None:
        # Quiet default access logs.
        return

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path == "/api/datasets":
            self._list_datasets()
            return

        if parsed.path == "/api/dataset":
            self._get_dataset(parsed.query)
            return

        self.send_error(HTTPStatus.NOT_FOUND)

    def do_POST(self) -> None:
        if self.path == "/api/highlights":
            self._predict()
        elif self.path == "/api/label":
            self._save_labels()
        else:
            self.send_error(HTTPStatus.NOT_FOUND)

    def _list_datasets(self) -> None:
        if not self.dataset_dir.is_dir():
            _json_response(self, {"datasets": []})
            return

        rows: list[dict[str, Any]] = []
        for path in dataset_files(self.dataset_dir):
            try:
                sample = load_highlight_sample(path)
            except (DatasetError, OSError, UnicodeDecodeError):
                continue
            rows.append(
                {
                    "id": sample.id,
                    "title": sample.title,
                    "file": path.name,
                    "labeled": sample.is_labeled,
                }
            )
        _json_response(self, {"datasets": rows})

    def _get_dataset(self, query: str) -> None:
        sample_id = (parse_qs(query).get("id") or [""])[0].strip()
        if not sample_id:
            _json_response(self, {"error": "Missing id"}, status=HTTPStatus.BAD_REQUEST)
            return

        path = find_sample_path(self.dataset_dir, sample_id) if self.dataset_dir.is_dir() else None
        if path is None:
            _json_response(self, {"error": "Dataset not found"}, status=HTTPStatus.NOT_FOUND)
            return

        try:
            sample = load_highlight_sample(path)
        except (DatasetError, OSError) as exc:
            _json_response(self, {"error": str(exc)}, status=HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        payload = sample.to_dict()
        payload["predictedMatches"] = predict_sample(sample)
        _json_response(self, payload)

    def _predict(self) -> None:
        try:
            payload = _read_json(self)
            ingredients = normalize_ingredient_groups(ingredient_groups_from_payload(payload.get("ingredients")))
            instructions = normalize_instruction_groups(instruction_groups_from_payload(payload.get("instructions")))
            options = MatcherOptions.from_dict(payload.get("options"))
        except (ValueError, TypeError) as exc:
            _json_response(self, {"error": str(exc)}, status=HTTPStatus.BAD_REQUEST)
            return

        mapping = map_ingredients_to_steps(ingredients, instructions, options)
        _json_response(
            self,
            {
                "mapping": mapping,
                "ingredients": groups_to_payload(ingredients),
                "instructions": groups_to_payload(instructions),
            },
        )

    def _save_labels(self) -> None:
        try:
            payload = _read_json(self)
        except ValueError as exc:
            _json_response(self, {"error": str(exc)}, status=HTTPStatus.BAD_REQUEST)
            return

        sample_id = payload.get("id")
        expected = payload.get("expectedMatches")
        if not isinstance(sample_id, str) or not sample_id:
            _json_response(self, {"error": "Missing id"}, status=HTTPStatus.BAD_REQUEST)
            return
        if not isinstance(expected, dict):
            _json_response(self, {"error": "expectedMatches required"}, status=HTTPStatus.BAD_REQUEST)
            return
        if not all(isinstance(ids, list) and all(isinstance(item, str) for item in ids) for ids in expected.values()):
            _json_response(
                self,
                {"error": "expectedMatches values must be lists of ingredient ids"},
                status=HTTPStatus.BAD_REQUEST,
            )
            return

        path = find_sample_path(self.dataset_dir, sample_id) if self.dataset_dir.is_dir() else None
        if path is None:
            _json_response(self, {"error": "Dataset not found"}, status=HTTPStatus.NOT_FOUND)
            return

        try:
            sample = load_highlight_sample(path)
            sample.expected_matches = {str(step_id): list(ids) for step_id, ids in expected.items()}
            save_highlight_sample(path, sample)
        except (DatasetError, OSError) as exc:
            _json_response(self, {"error": str(exc)}, status=HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        try:
            append_label_log(self.dataset_dir, sample.id)
        except OSError as exc:
            logger.warning("Could not append to label log: %s", exc)

        _json_response(self, {"ok": True})
