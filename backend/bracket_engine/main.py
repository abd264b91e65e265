import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session, select

from bracket_engine.config import log_level
from bracket_engine.database import get_session, init_db
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.routes import brackets, live, matches, results
from bracket_engine.services.broadcaster import ChannelBroadcaster

logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info(f"Bracket engine ready: {route_count} routes")
    yield


app = FastAPI(title="Tournament Bracket Engine API", lifespan=lifespan)

# One broadcaster per process; spectators and match handlers share it
app.state.broadcaster = ChannelBroadcaster()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(results.router, prefix="/api", tags=["results"])

# Spectator channel (no /api prefix)
app.include_router(live.router, tags=["live"])


@app.get("/api/health")
def health_check(session: Session = Depends(get_session)):
    """Liveness plus a cheap database round trip"""
    live_matches = session.exec(select(Match.id).where(Match.status == MatchStatus.LIVE.value)).all()
    return {"status": "healthy", "database": "ok", "live_matches": len(live_matches)}
