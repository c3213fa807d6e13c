import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from coderush.config import settings
from coderush.db import init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent
templates_dir = BASE_DIR / "templates"
static_dir = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(templates_dir))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not settings.codestral_api_url or not settings.codestral_api_key:
        logger.warning("Codestral is not configured; code verification will fail")
    logger.info("CodeRush started")
    yield


app = FastAPI(title="CodeRush", version="0.1.0", lifespan=lifespan)
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "content-type", "apikey", "x-client-info"],
)


@app.get("/health")
async def health():
    return {"status": "ok"}


# Import routers after app is created to avoid circular imports
from coderush.auth.router import guard_route  # noqa: E402
from coderush.auth.router import router as auth_router  # noqa: E402
from coderush.editor.router import router as editor_router  # noqa: E402
from coderush.leaderboard.router import router as leaderboard_router  # noqa: E402
from coderush.verify.router import router as verify_router  # noqa: E402

app.include_router(auth_router)
app.include_router(editor_router)
app.include_router(leaderboard_router)
app.include_router(verify_router)


@app.get("/")
async def index(request: Request, submitted: int = 0):
    from coderush.local_state import save_user
    from coderush.problems import PROBLEMS
    from coderush.progress import is_solved, is_unlocked, solved_count

    user, redirect = guard_route(request, "/")
    if redirect:
        return redirect

    cards = [
        {
            "problem": p,
            "unlocked": is_unlocked(p.level, user.solved),
            "solved": is_solved(p.level, user.solved),
        }
        for p in PROBLEMS
    ]

    resp = templates.TemplateResponse(
        request,
        "index.html",
        {
            "user": user,
            "cards": cards,
            "solved_count": solved_count(user.solved),
            "total_problems": len(PROBLEMS),
            "notice": "Code submitted!" if submitted else None,
        },
    )
    save_user(resp, user)
    return resp
