import os
import sys
import logging

# Ensure this directory is in the path for Vercel and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, LOG_LEVEL
from errors import register_exception_handlers
from routes.budget_routes import router as budget_router
from routes.carbon_routes import router as carbon_router
from routes.category_routes import router as category_router
from routes.chat_routes import router as chat_router
from routes.expense_routes import router as expense_router
from routes.gamification_routes import router as gamification_router
from routes.income_routes import router as income_router
from routes.profile_routes import router as profile_router
from routes.recommendation_routes import router as recommendation_router
from routes.savings_goal_routes import router as savings_goal_router
from routes.subscription_routes import router as subscription_router
from routes.transport_routes import router as transport_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ROUTERS = [
    profile_router,
    category_router,
    expense_router,
    income_router,
    budget_router,
    savings_goal_router,
    subscription_router,
    carbon_router,
    transport_router,
    gamification_router,
    recommendation_router,
    chat_router,
]

app = FastAPI(title="GreenLedger Finance API")

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    # Bearer tokens travel in headers, cookies are never used
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/v1/health-check")
async def health():
    return {"success": True, "status": "ok"}


for router in ROUTERS:
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
