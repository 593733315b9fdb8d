"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from netgraph.api import network
from netgraph.api.errors import install_error_handlers
from netgraph.domain.network.postgres_repo import PostgresConnectionGraphRepository
from netgraph.infra import postgres
from netgraph.obs import init as obs_init
from netgraph.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	pool = await postgres.init_pool()
	app.state.repository = PostgresConnectionGraphRepository(pool)
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Netgraph Connection Graph", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(network.router, tags=["network"])
