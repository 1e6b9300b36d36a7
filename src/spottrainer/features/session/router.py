from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, model_validator

from ...core.errors import GenerationExhaustedError
from .service import SessionConfig, SessionManager

__all__ = ["AnswerRequest", "CreateSessionRequest", "create_session_router"]


class CreateSessionRequest(BaseModel):
    phases: list[str] | None = None
    spot_types: list[str] | None = None
    players: int | None = None
    seed: int | None = None
    timebank: float | None = 15.0

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: dict[str, object]) -> dict[str, object]:
        if not isinstance(data, dict):
            return data
        cleaned: dict[str, object] = dict(data)
        for field in ("players", "seed"):
            value = cleaned.get(field)
            if value in (None, ""):
                cleaned[field] = None
                continue
            if isinstance(value, str):
                try:
                    cleaned[field] = int(value)
                except ValueError:
                    cleaned[field] = None
        for field in ("phases", "spot_types"):
            value = cleaned.get(field)
            if isinstance(value, str):
                cleaned[field] = [value] if value.strip() else None
        return cleaned

    def to_config(self) -> SessionConfig:
        return SessionConfig(
            phases=tuple(self.phases or ()),
            spot_types=tuple(self.spot_types or ()),
            player_count=self.players,
            seed=self.seed,
            timebank_seconds=self.timebank,
        )


class AnswerRequest(BaseModel):
    action: str


class _SessionController:
    def __init__(self, manager: SessionManager) -> None:
        self.manager = manager

    def _json_response(self, data: object, status_code: int = 200) -> JSONResponse:
        return JSONResponse(data, status_code=status_code)

    async def create(self, body: CreateSessionRequest) -> Response:
        try:
            session_id = self.manager.create_session(body.to_config())
        except ValueError as exc:
            raise HTTPException(400, str(exc)) from exc
        return self._json_response({"session": session_id}, status_code=201)

    async def deal(self, sid: str) -> Response:
        try:
            payload = await self.manager.next_spot(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        except GenerationExhaustedError as exc:
            raise HTTPException(503, str(exc)) from exc
        return self._json_response(payload.to_dict())

    async def spot(self, sid: str) -> Response:
        try:
            payload = self.manager.current_spot(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return self._json_response(payload.to_dict())

    async def answer(self, sid: str, body: AnswerRequest) -> Response:
        try:
            feedback = self.manager.answer(sid, body.action)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(400, str(exc)) from exc
        return self._json_response(feedback.to_dict())

    async def timeout(self, sid: str) -> Response:
        try:
            feedback = self.manager.expire(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(400, str(exc)) from exc
        return self._json_response(feedback.to_dict())

    async def summary(self, sid: str) -> Response:
        try:
            summary = self.manager.summary(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return self._json_response(summary.to_dict())

    async def history(self, sid: str) -> Response:
        try:
            entries = self.manager.history(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return self._json_response([entry.to_dict() for entry in entries])


def create_session_router(manager: SessionManager) -> APIRouter:
    controller = _SessionController(manager)
    router = APIRouter(prefix="/api/v1/session", tags=["session"])

    @router.post("")
    async def create_session(body: CreateSessionRequest) -> Response:
        return await controller.create(body)

    @router.post("/{sid}/spot")
    async def deal_spot(sid: str) -> Response:
        return await controller.deal(sid)

    @router.get("/{sid}/spot")
    async def get_spot(sid: str) -> Response:
        return await controller.spot(sid)

    @router.post("/{sid}/answer")
    async def post_answer(sid: str, body: AnswerRequest) -> Response:
        return await controller.answer(sid, body)

    @router.post("/{sid}/timeout")
    async def post_timeout(sid: str) -> Response:
        return await controller.timeout(sid)

    @router.get("/{sid}/summary")
    async def get_summary(sid: str) -> Response:
        return await controller.summary(sid)

    @router.get("/{sid}/history")
    async def get_history(sid: str) -> Response:
        return await controller.history(sid)

    return router
