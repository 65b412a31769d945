"""CLI: replay de telemetría y exportación de esquemas.

Ejemplos:
    python -m jobs.replay_cli replay samples/gas.jsonl --model GasSensor
    python -m jobs.replay_cli schema --out schemas/

Formato de replay (una línea JSON por mensaje, en orden de llegada):
    {"id": "23", "message": {"ppmReading": 51, "timestamp": 1706688000000}}
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from common.config import get_settings
from twin_api.classification import MessageValidationError
from twin_api.dispatch import GAS_SENSOR, GRID_NODE, TwinDispatcher
from twin_api.dispatch.factory import build_dispatcher
from twin_api.schema_export import export_schemas

logger = logging.getLogger(__name__)


def read_batches(path: Path) -> Dict[str, List[Any]]:
    """Agrupa las líneas por id conservando el orden del archivo."""
    batches: Dict[str, List[Any]] = {}
    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if not isinstance(record, dict) or "id" not in record or "message" not in record:
                raise ValueError(f"{path}:{lineno}: expected an object with 'id' and 'message'")
            batches.setdefault(str(record["id"]), []).append(record["message"])
    return batches


def replay(dispatcher: TwinDispatcher, model: str, batches: Dict[str, List[Any]]) -> Tuple[dict, int]:
    """Despacha un lote por entidad. Devuelve (reporte, número de fallos)."""
    twin = dispatcher.model(model)
    parsed: List[Tuple[str, str, Sequence[Any]]] = []
    failures: List[Dict[str, str]] = []

    for entity_id, payloads in batches.items():
        try:
            parsed.append((model, entity_id, dispatcher.parse_messages(model, entity_id, payloads)))
        except MessageValidationError as e:
            logger.error("Lote inválido entity=%s: %s", entity_id, e)
            failures.append({"id": entity_id, "error": str(e)})

    report = dispatcher.dispatch_many(parsed, max_workers=get_settings().dispatch_workers)
    failures.extend({"id": f.entity_id, "error": str(f.cause)} for f in report.failures)

    entities = {
        r.entity_id: {
            "state": twin.state_view.from_state(r.state).model_dump(),
            "alerts": len(r.alerts),
        }
        for r in report.results
    }
    return {"model": model, "entities": entities, "failures": failures}, len(failures)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="Digital twin telemetry tools")
    sub = p.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("replay", help="replay a JSONL telemetry file through the reducers")
    rp.add_argument("file", type=Path)
    rp.add_argument("--model", choices=[GAS_SENSOR, GRID_NODE], required=True)
    rp.add_argument("--now-ms", type=int, default=None, help="fixed clock for deterministic replay")

    sp = sub.add_parser("schema", help="export JSON schemas of every twin model")
    sp.add_argument("--out", type=Path, required=True)

    args = p.parse_args(argv)

    if args.command == "schema":
        for path in export_schemas(args.out):
            print(path)
        return 0

    clock = (lambda: args.now_ms) if args.now_ms is not None else None
    dispatcher = build_dispatcher(settings, clock=clock)
    try:
        batches = read_batches(args.file)
    except (OSError, ValueError) as e:
        logger.error("No se pudo leer %s: %s", args.file, e)
        return 2

    report, failed = replay(dispatcher, args.model, batches)
    print(json.dumps(report, indent=2, sort_keys=True))
    logger.info("Replay completado: %s", dispatcher.stats)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
