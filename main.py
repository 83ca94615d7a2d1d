from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import get_settings
from core.state_manager import StateManager
from storage import create_store
from api import teams, points

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立 store 與唯一的 StateManager，並載入所有狀態
    settings = get_settings()
    configure_logging(settings.log_level)
    manager = StateManager(create_store(settings)).load()
    app.state.state_manager = manager
    yield
    # Shutdown: 關閉 StateManager（同時釋放 store 連線）
    manager.close()


app = FastAPI(
    title="Team Scoreboard API",
    description="Authoritative team, membership and point state for live events",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration（overlay 通常從瀏覽器來源讀取）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(teams.router)
app.include_router(points.router)


@app.get("/")
def root():
    return {"message": "Team Scoreboard API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
