"""REST service for keeping score of Judgement games."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Literal, NoReturn, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from judgement.errors import EngineError, Forbidden, GameNotFound, RoundNotFound
from judgement.game import Action, ActionKind
from judgement.rules_schema import load_config
from judgement.service import GameService, GameView

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    name: str
    owner_name: Optional[str] = None
    operator_email: Optional[str] = None


class AddPlayerRequest(BaseModel):
    name: str
    email: str


class DealerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_dealer_email: Optional[str] = Field(None, alias="firstDealerEmail")


class RoundActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["START", "BIDS", "TRICKS", "UNDO"]
    inputs: Dict[str, Any] = Field(default_factory=dict)
    target_round_index: Optional[int] = Field(None, alias="targetRoundIndex")


def status_for(error: EngineError) -> int:
    if isinstance(error, Forbidden):
        return 403
    if isinstance(error, (GameNotFound, RoundNotFound)):
        return 404
    return 400


def raise_http(error: EngineError) -> NoReturn:
    logger.info("Request rejected with %s: %s", error.kind, error)
    raise HTTPException(status_code=status_for(error), detail={"kind": error.kind, "error": str(error)})


def serialize_game(view: GameView) -> Dict[str, object]:
    return asdict(view)


def create_app(service: Optional[GameService] = None) -> FastAPI:
    service = service or GameService(config=load_config())
    app = FastAPI(title="Judgement Score Service")
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def require_actor(actor: Optional[str]) -> str:
        if not actor:
            raise HTTPException(status_code=401, detail={"kind": "Unauthorized", "error": "Please sign in again."})
        return actor

    @app.post("/games", status_code=201)
    def create_game(request: CreateGameRequest, x_user_email: Optional[str] = Header(None)) -> Dict[str, object]:
        actor = require_actor(x_user_email)
        try:
            view = service.create_game(
                request.name,
                actor,
                owner_name=request.owner_name,
                operator_email=request.operator_email,
            )
        except EngineError as exc:
            raise_http(exc)
        return {"game": serialize_game(view)}

    @app.get("/games/{game_id}")
    def get_game(game_id: str) -> Dict[str, object]:
        try:
            view = service.get_game_view(game_id)
        except EngineError as exc:
            raise_http(exc)
        return {"game": serialize_game(view)}

    @app.post("/games/{game_id}/players")
    def add_player(game_id: str, request: AddPlayerRequest, x_user_email: Optional[str] = Header(None)) -> Dict[str, object]:
        actor = require_actor(x_user_email)
        try:
            view = service.add_player(game_id, actor, request.name, request.email)
        except EngineError as exc:
            raise_http(exc)
        return {"game": serialize_game(view)}

    @app.post("/games/{game_id}/dealer")
    def set_dealer(game_id: str, request: DealerRequest, x_user_email: Optional[str] = Header(None)) -> Dict[str, object]:
        actor = require_actor(x_user_email)
        try:
            view = service.set_first_dealer(game_id, actor, request.first_dealer_email)
        except EngineError as exc:
            raise_http(exc)
        return {"game": serialize_game(view)}

    @app.post("/games/{game_id}/rounds")
    def round_action(game_id: str, request: RoundActionRequest, x_user_email: Optional[str] = Header(None)) -> Dict[str, object]:
        actor = require_actor(x_user_email)
        action = Action(
            kind=ActionKind[request.action],
            inputs=dict(request.inputs),
            target_round_index=request.target_round_index,
        )
        try:
            view = service.apply(game_id, actor, action)
        except EngineError as exc:
            raise_http(exc)
        return {"success": True, "game": serialize_game(view)}

    @app.get("/games/{game_id}/predictions/{email}")
    def predictions(game_id: str, email: str) -> Dict[str, object]:
        try:
            hints = service.get_predictions(game_id, email)
        except EngineError as exc:
            raise_http(exc)
        return {"predictions": asdict(hints)}

    return app


app = create_app()
