"""Exportación de JSON Schema de los modelos de gemelo.

Un archivo `<Modelo>.schema.json` por modelo con los esquemas de
estado, mensaje entrante y (si aplica) alerta.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .dispatch.models import TwinModel, default_models

logger = logging.getLogger(__name__)


def model_schema(twin: TwinModel) -> Dict[str, object]:
    schema: Dict[str, object] = {
        "model": twin.name,
        "state": twin.state_view.model_json_schema(),
        "message": twin.message_schema.model_json_schema(by_alias=True),
    }
    if twin.alert_schema is not None:
        schema["alert"] = twin.alert_schema.model_json_schema(by_alias=True)
    return schema


def export_schemas(out_dir: str | Path, models: Optional[Mapping[str, TwinModel]] = None) -> List[Path]:
    """Escribe los esquemas en `out_dir` y devuelve las rutas creadas."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for name, twin in sorted((models or default_models()).items()):
        path = out / f"{name}.schema.json"
        path.write_text(json.dumps(model_schema(twin), indent=2, sort_keys=True), encoding="utf-8")
        written.append(path)
        logger.info("[SCHEMA] %s -> %s", name, path)
    return written
