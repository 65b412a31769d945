from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request

from .alerts import InMemoryAlertSink
from .classification import MessageValidationError
from .dispatch import DispatchError, TwinDispatcher, UnknownModelError
from .dispatch.factory import build_dispatcher
from .schemas import DispatchOut, GasAlertOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["twins"])


def get_dispatcher(request: Request) -> TwinDispatcher:
    return request.app.state.dispatcher


def _model_or_404(dispatcher: TwinDispatcher, model: str):
    try:
        return dispatcher.model(model)
    except UnknownModelError:
        raise HTTPException(status_code=404, detail=f"Unknown model: {model}")


@router.post("/twins/{model}/{entity_id}/messages", response_model=DispatchOut)
def post_messages(
    model: str,
    entity_id: str,
    payloads: List[Dict[str, Any]] = Body(...),
    dispatcher: TwinDispatcher = Depends(get_dispatcher),
):
    """Despacha un lote ordenado de mensajes a una entidad."""
    twin = _model_or_404(dispatcher, model)

    try:
        messages = dispatcher.parse_messages(model, entity_id, payloads)
    except MessageValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        result = dispatcher.dispatch(model, entity_id, messages)
    except DispatchError as e:
        if isinstance(e.cause, MessageValidationError):
            raise HTTPException(status_code=422, detail=str(e.cause))
        raise HTTPException(status_code=500, detail=f"Dispatch failed: {e.cause}")

    return DispatchOut(
        model=model,
        entity_id=entity_id,
        messages=result.messages,
        state=twin.state_view.from_state(result.state).model_dump(),
        alerts=[GasAlertOut.from_alert(a) for a in result.alerts],
    )


@router.get("/twins/{model}")
def list_entities(model: str, dispatcher: TwinDispatcher = Depends(get_dispatcher)):
    _model_or_404(dispatcher, model)
    return {"model": model, "ids": dispatcher.store.ids(model)}


@router.get("/twins/{model}/{entity_id}")
def get_entity_state(model: str, entity_id: str, dispatcher: TwinDispatcher = Depends(get_dispatcher)):
    twin = _model_or_404(dispatcher, model)
    state = dispatcher.get_state(model, entity_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity: {model}/{entity_id}")
    return twin.state_view.from_state(state).model_dump()


@router.get("/twins/{model}/{entity_id}/alerts", response_model=List[GasAlertOut])
def receive_alerts(model: str, entity_id: str, dispatcher: TwinDispatcher = Depends(get_dispatcher)):
    """Vacía el buzón de alertas en memoria de la entidad."""
    _model_or_404(dispatcher, model)
    sink = dispatcher.sink
    if not isinstance(sink, InMemoryAlertSink):
        raise HTTPException(status_code=409, detail="Alert sink does not support polling")
    return [GasAlertOut.model_validate_json(raw) for raw in sink.receive(model, entity_id)]


@router.get("/health")
def health(dispatcher: TwinDispatcher = Depends(get_dispatcher)):
    return {
        "status": "ok",
        "models": sorted(dispatcher.models),
        "stats": dispatcher.stats.to_dict(),
    }


def create_app(dispatcher: Optional[TwinDispatcher] = None) -> FastAPI:
    app = FastAPI(title="IoT Twin Service", version="0.1.0")
    app.state.dispatcher = dispatcher or build_dispatcher()
    app.include_router(router)
    return app


app = create_app()
