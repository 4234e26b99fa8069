import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from bson import ObjectId
from fastapi import FastAPI, Depends, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics import (
    InvalidSearchParameters,
    average_score_by_category,
    average_score_by_vendor,
    build_search_pipeline,
    distinct_categories,
    parse_search_query,
    strength_flavor_ratio,
)
from auth import require_auth
from database import PotionStore, connect
from schemas import PotionCreate, PotionUpdate

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

PORT = int(os.getenv("PORT", 3000))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = connect()
    app.state.store = PotionStore.from_client(client)
    yield
    client.close()
    logger.info("MongoDB connection closed")


# App and CORS
app = FastAPI(
    title="Potion API",
    version="1.0.0",
    description="API to manage magic potions",
    docs_url="/api-docs",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(request: Request) -> PotionStore:
    return request.app.state.store


def to_json(value: Any) -> Any:
    return jsonable_encoder(value, custom_encoder={ObjectId: str})


# Error shaping: every non-2xx body is {"error": message}
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse({"error": "; ".join(messages) or "Invalid request"}, status_code=400)


@app.exception_handler(InvalidSearchParameters)
async def search_parameters_error(request: Request, exc: InvalidSearchParameters):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(PyMongoError)
async def store_error(request: Request, exc: PyMongoError):
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": str(exc)}, status_code=500)


# Potion routes
@app.get("/potions", tags=["Potions"])
def list_potions(store: PotionStore = Depends(get_store)):
    return to_json(store.find_all())


@app.get("/potions/get/{potion_id}", tags=["Potions"])
def get_potion(potion_id: str, store: PotionStore = Depends(get_store)):
    return to_json(store.find_by_id(potion_id))


@app.post("/potions/new", status_code=201, tags=["Potions"], dependencies=[Depends(require_auth)])
def create_potion(payload: PotionCreate, store: PotionStore = Depends(get_store)):
    doc = store.insert(payload.model_dump(exclude_none=True))
    logger.info("Created potion %s", doc["_id"])
    return to_json(doc)


@app.put("/potions/replace/{potion_id}", status_code=204, tags=["Potions"], dependencies=[Depends(require_auth)])
def update_potion(potion_id: str, payload: PotionUpdate, store: PotionStore = Depends(get_store)):
    matched = store.update(potion_id, payload.model_dump(exclude_unset=True))
    logger.info("Updated potion %s (matched=%s)", potion_id, matched)
    return Response(status_code=204)


@app.delete("/potions/delete/{potion_id}", status_code=204, tags=["Potions"], dependencies=[Depends(require_auth)])
def delete_potion(potion_id: str, store: PotionStore = Depends(get_store)):
    deleted = store.delete(potion_id)
    logger.info("Deleted potion %s (deleted=%s)", potion_id, deleted)
    return Response(status_code=204)


@app.get("/potions/names", tags=["Potions"])
def list_names(store: PotionStore = Depends(get_store)):
    return to_json(store.names())


@app.get("/potions/vendor/{vendor_id}", tags=["Potions"])
def list_by_vendor(vendor_id: str, store: PotionStore = Depends(get_store)):
    return to_json(store.find_by_vendor(vendor_id))


@app.get("/potions/price-range", tags=["Potions"])
def list_by_price_range(
    min_price: Optional[float] = Query(None, alias="min"),
    max_price: Optional[float] = Query(None, alias="max"),
    store: PotionStore = Depends(get_store),
):
    return to_json(store.find_by_price_range(min_price, max_price))


# Analytics routes
@app.get("/potions/analytics/distinct-categories", tags=["Analytics"])
def analytics_distinct_categories(store: PotionStore = Depends(get_store)):
    return to_json(store.aggregate(distinct_categories()))


@app.get("/potions/analytics/average-score-by-vendor", tags=["Analytics"])
def analytics_average_score_by_vendor(store: PotionStore = Depends(get_store)):
    return to_json(store.aggregate(average_score_by_vendor()))


@app.get("/potions/analytics/average-score-by-category", tags=["Analytics"])
def analytics_average_score_by_category(store: PotionStore = Depends(get_store)):
    return to_json(store.aggregate(average_score_by_category()))


@app.get("/potions/analytics/strength-flavor-ratio", tags=["Analytics"])
def analytics_strength_flavor_ratio(store: PotionStore = Depends(get_store)):
    return to_json(store.aggregate(strength_flavor_ratio()))


@app.get("/potions/analytics/search", tags=["Analytics"])
def analytics_search(
    group: Optional[str] = None,
    metric: Optional[str] = None,
    champ: Optional[str] = None,
    store: PotionStore = Depends(get_store),
):
    query = parse_search_query(group, metric, champ)
    return to_json(store.aggregate(build_search_pipeline(query)))


# Utility endpoints
@app.get("/")
def root():
    return {"message": "Potion API running"}


@app.get("/health")
def health(store: PotionStore = Depends(get_store)):
    try:
        store.ping()
        return {"backend": "ok", "database": "ok"}
    except PyMongoError as e:
        return {"backend": "ok", "database": f"error: {e}"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=PORT)
