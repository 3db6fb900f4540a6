# marketstock/main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketstock.config import settings
from marketstock.database import init_db

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Routers
from marketstock.routes.products import router as products_router
from marketstock.routes.suppliers import router as suppliers_router
from marketstock.routes.markets import router as markets_router
from marketstock.routes.categories import router as categories_router
from marketstock.routes.logs import router as logs_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Market Stock API", version="1.0.0", lifespan=lifespan)

# CORS: local dev frontend plus the deployed one when configured
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(products_router)
app.include_router(suppliers_router)
app.include_router(markets_router)
app.include_router(categories_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Market Stock API is running"}
