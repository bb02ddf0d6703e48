from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from mangum import Mangum

from .access import AccessDecision, InvalidAccessCookie, authorize, cookie_name, parse_role
from .assigners import ResultAssigner, build_assigner
from .dispatch import dispatch_results
from .domain import ResultsRequest, ResultsResponse
from .log import configure_logging
from .points import PointsPolicy, get_policy
from .ranking import compute_results


def _load_dotenv(repo_root: Path) -> None:
    env_path = repo_root / "config" / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def create_app(
    assigner: ResultAssigner | None = None,
    policy: PointsPolicy | None = None,
) -> FastAPI:
    repo_root = Path(__file__).resolve().parents[3]
    _load_dotenv(repo_root)
    configure_logging()

    app = FastAPI(title="Festrank Results")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    assigner = assigner or build_assigner()
    policy = policy or get_policy()
    access_cookie = cookie_name()

    @app.middleware("http")
    async def role_guard(request: Request, call_next):
        try:
            role = parse_role(request.cookies.get(access_cookie))
        except InvalidAccessCookie as e:
            logger.warning(f"Failed to parse role cookie: {e}")
            response = JSONResponse(status_code=401, content={"detail": "invalid access cookie"})
            response.delete_cookie(access_cookie)
            return response

        decision = authorize(request.url.path, role)
        if decision is AccessDecision.LOGIN:
            return JSONResponse(status_code=401, content={"detail": "login required"})
        if decision is AccessDecision.FORBIDDEN:
            return JSONResponse(status_code=403, content={"detail": "role not allowed"})
        return await call_next(request)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/api/points-policy", response_model=PointsPolicy)
    def points_policy():
        return policy

    @app.post("/api/results/preview", response_model=ResultsResponse)
    def preview_results(req: ResultsRequest):
        results = compute_results(req.participants, req.program, policy)
        return ResultsResponse(program_id=req.program.id, ok=True, results=results)

    @app.post("/api/results/publish", response_model=ResultsResponse)
    async def publish_results(req: ResultsRequest):
        results = compute_results(req.participants, req.program, policy)
        ok = await dispatch_results(results, req.program, assigner)
        if not ok:
            logger.warning(f"Some results for program {req.program.id} were not saved")
        return ResultsResponse(program_id=req.program.id, ok=ok, results=results)

    return app


app = create_app()
handler = Mangum(app)
