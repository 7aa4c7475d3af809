"""
HTTP Control Plane

FastAPI application translating REST calls into registry, session and flow
operations. Session-scoped routes pick their session from ``?session=``,
falling back to the registry's resolution policy.

Usage:
    from browser_control.server import create_app
    app = create_app(ServiceConfig.from_env())
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .browser.controller import create_browser
from .browser.registry import DEFAULT_SESSION_NAME, SessionRegistry
from .browser.session import BrowserFactory, BrowserSession
from .config import ServiceConfig, get_logger
from .errors import ControlPlaneError, ValidationError
from .flows import FlowRunner, FlowStore
from .models import (
    ChunkRequest,
    CreateSessionRequest,
    ExportFlowRequest,
    NavigateRequest,
    RunFlowRequest,
    SaveAuthRequest,
)
from .profiles import ProfileStore
from .tools import get_action_schemas

logger = get_logger(__name__)


def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    browser_factory: BrowserFactory = create_browser,
    registry: Optional[SessionRegistry] = None,
    on_exit: Optional[Callable[[], None]] = None,
) -> FastAPI:
    """
    Build the control plane application.

    Args:
        config: Service configuration (uses env if None)
        browser_factory: Builds browser controllers for sessions and flows
        registry: Session registry (a fresh one is built if None)
        on_exit: Called after POST /exit drained all sessions; the CLI
            uses it to stop the HTTP server

    Returns:
        Configured FastAPI application
    """
    config = config or ServiceConfig.from_env()
    profile_store = ProfileStore(config.profiles_dir)
    flow_store = FlowStore(config.flows_dir)

    if registry is None:
        registry = SessionRegistry(
            lambda name: BrowserSession(name, config, profile_store, browser_factory)
        )
    flow_runner = FlowRunner(config, flow_store, profile_store, browser_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Control plane ready (data in {config.home.resolve()})")
        yield
        if len(registry):
            logger.info(f"Shutting down: stopping {len(registry)} session(s)")
            await registry.stop_all()

    app = FastAPI(title="Browser Control Plane", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry
    app.state.profile_store = profile_store
    app.state.flow_store = flow_store
    app.state.flow_runner = flow_runner
    app.state.on_exit = on_exit

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------ #
    # Error mapping
    # ------------------------------------------------------------------ #

    @app.exception_handler(ControlPlaneError)
    async def control_plane_error(request: Request, exc: ControlPlaneError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    # ------------------------------------------------------------------ #
    # Global routes
    # ------------------------------------------------------------------ #

    @app.options("/{path:path}")
    async def options(path: str):
        return Response(status_code=204)

    @app.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(registry)}

    @app.get("/actions")
    async def actions():
        return {"actions": get_action_schemas()}

    @app.get("/profiles")
    async def list_profiles():
        return {"profiles": [p.to_json() for p in profile_store.list()]}

    @app.get("/sessions")
    async def list_sessions():
        return {"sessions": [s.to_json() for s in registry.statuses()]}

    @app.post("/sessions")
    async def create_session(body: CreateSessionRequest):
        if not body.url:
            raise ValidationError(
                "Missing 'url'. Send the page to open, e.g. {\"url\": \"https://example.com\"}"
            )
        name = body.name or DEFAULT_SESSION_NAME
        session, inspection = await registry.create(
            name, body.url, profile=body.profile, headless=body.headless
        )
        return {
            "type": "session_created",
            "name": session.name,
            "sessionId": session.session_id,
            "profile": session.profile,
            "inspection": inspection.to_json(),
        }

    @app.delete("/sessions/{name}")
    async def delete_session(name: str):
        summary = await registry.remove(name)
        return {"type": "session_stopped", **summary.to_json()}

    @app.get("/flows")
    async def list_flows():
        return {"flows": [f.to_json() for f in flow_store.list()]}

    @app.post("/flows/{name}/run")
    async def run_flow(name: str, body: Optional[RunFlowRequest] = None):
        body = body or RunFlowRequest()
        result = await flow_runner.run(
            name,
            profile=body.profile,
            start_url=body.start_url,
            headless=body.headless,
        )
        return result.to_json()

    @app.post("/exit")
    async def exit_server(background: BackgroundTasks):
        summaries = await registry.stop_all()
        if app.state.on_exit is not None:
            background.add_task(app.state.on_exit)
        return {"type": "exiting", "stopped": [s.to_json() for s in summaries]}

    # ------------------------------------------------------------------ #
    # Session-scoped routes
    # ------------------------------------------------------------------ #

    @app.get("/status")
    async def status(session: Optional[str] = None):
        return registry.resolve(session).status().to_json()

    @app.get("/inspect")
    async def inspect(
        session: Optional[str] = None,
        full_page: bool = Query(False, alias="fullPage"),
    ):
        target = registry.resolve(session)
        inspection = await target.inspect(full_page=full_page)
        return {"type": "inspection", "session": target.name, "inspection": inspection.to_json()}

    @app.post("/chunk")
    async def chunk(body: ChunkRequest, session: Optional[str] = None):
        if not body.code or not body.code.strip():
            raise ValidationError(
                "Missing 'code'. Send the script to run, e.g. {\"code\": \"click '#login'\"}"
            )
        target = registry.resolve(session)
        result = await target.run_chunk(body.code, label=body.label)
        return result.to_json()

    @app.post("/navigate")
    async def navigate(body: NavigateRequest, session: Optional[str] = None):
        if not body.url:
            raise ValidationError(
                "Missing 'url'. Send the page to open, e.g. {\"url\": \"https://example.com\"}"
            )
        target = registry.resolve(session)
        inspection = await target.navigate(body.url, full_page=body.full_page)
        return {"type": "navigated", "session": target.name, "inspection": inspection.to_json()}

    @app.post("/save-auth")
    async def save_auth(body: Optional[SaveAuthRequest] = None, session: Optional[str] = None):
        body = body or SaveAuthRequest()
        target = registry.resolve(session)
        result = await target.save_auth(profile=body.profile, description=body.description)
        return result.to_json()

    @app.get("/review")
    async def review(session: Optional[str] = None):
        return registry.resolve(session).review().to_json()

    @app.post("/export-flow")
    async def export_flow(body: ExportFlowRequest, session: Optional[str] = None):
        if not body.name:
            raise ValidationError("Missing 'name'. Send the flow name, e.g. {\"name\": \"login\"}")
        target = registry.resolve(session)
        info = flow_store.export(body.name, target, overwrite=body.overwrite)
        return {"type": "flow_exported", "session": target.name, "flow": info.to_json()}

    return app
