# src/main.py
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from auth.routes import router as auth_router
from users.routes import router as users_router
from packages.routes import router as packages_router
from promo.routes import router as promo_router
from membership.routes import router as membership_router
from payment.routes import router as payment_router
from trainer.routes import router as trainer_router
from classes.routes import router as classes_router
from metrics.routes import router as metrics_router
from admin.routes import router as admin_router
from config import settings
from database import SessionLocal
from errors import GymError
from notification.dispatcher import NotificationDispatcher
from notification.services import NotificationService
from payment.gateway import MidtransClient
from payment.services import PaymentService
from scheduler.tasks import start_scheduler, shutdown_scheduler, expire_pending_transactions

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Gym Membership Backend",
    description="API for gym packages, promo codes, payments, classes and PT booking",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(packages_router)
app.include_router(promo_router)
app.include_router(payment_router)
app.include_router(membership_router)
app.include_router(trainer_router)
app.include_router(classes_router)
app.include_router(metrics_router)
app.include_router(admin_router)

@app.exception_handler(GymError)
async def gym_error_handler(request: Request, exc: GymError):
    """Translate domain errors into HTTP responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())

def build_services(app: FastAPI) -> None:
    """Attach the shared gateway, notification and payment services to app.state."""
    notifications = NotificationService(timeout=settings.GATEWAY_TIMEOUT_SECONDS)
    dispatcher = NotificationDispatcher()
    app.state.notifications = notifications
    app.state.dispatcher = dispatcher
    app.state.payment_service = PaymentService(
        gateway=MidtransClient.from_settings(settings),
        notifications=notifications,
        dispatcher=dispatcher,
    )

@app.on_event("startup")
def startup_event():
    """Wire services and run initial tasks on startup."""
    build_services(app)
    app.state.scheduler = None
    if settings.ENABLE_SCHEDULER:
        expire_pending_transactions(SessionLocal)
        app.state.scheduler = start_scheduler(SessionLocal)

@app.on_event("shutdown")
def shutdown_event():
    shutdown_scheduler(getattr(app.state, "scheduler", None))
    dispatcher = getattr(app.state, "dispatcher", None)
    if dispatcher is not None:
        dispatcher.shutdown(wait=False)

@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to Gym Membership Backend!"}
