"""FastAPI application exposing groundrag over WebSockets and HTTP."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any
from uuid import NAMESPACE_URL, uuid4, uuid5

from fastapi import Depends, FastAPI, Request, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from groundrag.api.schemas import CitationModel, QueryRequest, QueryResponse, ReadinessResponse
from groundrag.config import Settings, get_settings
from groundrag.ingestion import KnowledgeBaseLoader, LoaderConfig
from groundrag.metrics.observability import (
    SessionMetrics,
    bind_correlation_id,
    bind_session_id,
    clear_correlation_id,
    clear_session_id,
    configure_logging,
    get_logger,
)
from groundrag.retrieval.service import KnowledgeBase, RetrievalConfig
from groundrag.services.actions import ActionExecutor
from groundrag.services.generation import TemplateComposer
from groundrag.services.hallucination import HallucinationInjector
from groundrag.services.query import QueryService
from groundrag.session.engine import SessionConfig, SessionEngine
from groundrag.session.state import Clock, SystemClock


@dataclass(frozen=True)
class AppDependencies:
    knowledge_base: KnowledgeBase
    query_service: QueryService
    executor: ActionExecutor
    session_config: SessionConfig
    clock: Clock


def _build_dependencies(settings: Settings) -> AppDependencies:
    loader = KnowledgeBaseLoader(
        LoaderConfig(directory=settings.kb_dir, pattern=settings.kb_pattern, label=settings.kb_label),
    )
    knowledge_base = KnowledgeBase(config=RetrievalConfig(max_results=settings.max_results))
    knowledge_base.load(loader.load())
    composer = TemplateComposer(hallucinator=HallucinationInjector() if settings.hallucinate else None)
    query_service = QueryService(knowledge_base, composer, max_results=settings.max_results)
    return AppDependencies(
        knowledge_base=knowledge_base,
        query_service=query_service,
        executor=ActionExecutor(),
        session_config=SessionConfig.from_settings(settings),
        clock=SystemClock(),
    )


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    deps = dependencies or _build_dependencies(settings)

    logger = get_logger("api")
    app = FastAPI(title="groundrag API", version="0.1.0")
    app.state.dependencies = deps

    # Optional CORS
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "correlation_id": correlation_id},
        )

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_query_service(dep: AppDependencies = Depends(get_dependencies)) -> QueryService:
        return dep.query_service

    def get_knowledge_base(dep: AppDependencies = Depends(get_dependencies)) -> KnowledgeBase:
        return dep.knowledge_base

    @app.websocket("/ws")
    async def chat_session(websocket: WebSocket) -> None:
        await websocket.accept()
        dep: AppDependencies = websocket.app.state.dependencies
        session_id = uuid4().hex
        bind_session_id(session_id)

        async def send(frame: dict[str, Any]) -> None:
            if websocket.client_state != WebSocketState.CONNECTED:
                return
            try:
                await websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as exc:
                # Peer went away mid-stream; the receive loop will observe the close.
                logger.debug("session.send_failed", detail=str(exc))

        engine = SessionEngine(
            dep.query_service,
            send,
            executor=dep.executor,
            config=dep.session_config,
            clock=dep.clock,
            session_id=session_id,
        )
        SessionMetrics.active_sessions.inc()
        logger.info("session.connected")
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info("session.disconnected", code=message.get("code"))
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await engine.dispatch(raw)
        except WebSocketDisconnect as exc:
            logger.info("session.disconnected", code=exc.code)
        finally:
            await engine.close()
            SessionMetrics.active_sessions.dec()
            clear_session_id()

    @app.post("/query", response_model=QueryResponse)
    async def query_documents(
        payload: QueryRequest,
        service: QueryService = Depends(get_query_service),
    ) -> QueryResponse:
        start = time.perf_counter()
        answer = service.answer(payload.question, max_results=payload.top_k)
        latency_ms = (time.perf_counter() - start) * 1000
        return QueryResponse(
            query_id=uuid5(NAMESPACE_URL, payload.question).hex,
            answer=answer.text,
            citations=[CitationModel(file=c.source, snippet=c.snippet) for c in answer.citations],
            latency_ms=latency_ms,
            suggested_action=answer.suggested_action.action if answer.suggested_action else None,
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from groundrag import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready", response_model=ReadinessResponse)
    async def readiness(knowledge_base: KnowledgeBase = Depends(get_knowledge_base)) -> ReadinessResponse:
        documents = len(knowledge_base)
        return ReadinessResponse(status="ready" if documents else "empty", documents=documents)

    return app


app = create_app()
