import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from app.api import auth as auth_api
from app.api import ip as ip_api
from app.api import phone as phone_api
from app.api import purchase as purchase_api
from app.api import services as services_api
from app.api import topup as topup_api
from app.api import transactions as transactions_api
from app.api import user as user_api
from app.config import Settings, settings as default_settings
from app.database import build_engine, build_sessionmaker, create_tables
from app.errors import register_error_handlers
from app.security import LaunchDataVerifier
from app.services.lookups import IpApiClient, SyntheticPhoneLookup
from app.services.payments import CryptoCloudClient
from app.storage.ledger import LedgerStorage
from app.ws import event_manager

logger = logging.getLogger("wallet.api")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(app_settings.DATABASE_PATH, echo=app_settings.DATABASE_ECHO)
        await create_tables(engine)
        storage = LedgerStorage(
            build_sessionmaker(engine),
            single_connection=app_settings.DATABASE_PATH == ":memory:",
        )
        await storage.seed_catalog()
        if app_settings.SEED_DEMO_DATA:
            await storage.seed_demo_data()
        if not app_settings.TELEGRAM_BOT_TOKEN:
            logger.warning("TELEGRAM_BOT_TOKEN is empty, launch data cannot be verified")
        if app_settings.ALLOW_DEMO_IDENTITY:
            logger.warning("demo identity is enabled, do not use this configuration in production")

        app.state.storage = storage
        app.state.verifier = LaunchDataVerifier(
            app_settings.TELEGRAM_BOT_TOKEN,
            allow_demo_identity=app_settings.ALLOW_DEMO_IDENTITY,
        )
        app.state.payments = CryptoCloudClient(
            app_settings.CRYPTOCLOUD_API_URL,
            app_settings.CRYPTOCLOUD_API_KEY,
            app_settings.CRYPTOCLOUD_SHOP_ID,
            timeout=app_settings.PROVIDER_TIMEOUT_SECONDS,
        )
        app.state.ip_lookup = IpApiClient(app_settings.IP_LOOKUP_URL, timeout=app_settings.PROVIDER_TIMEOUT_SECONDS)
        app.state.phone_lookup = SyntheticPhoneLookup()
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="CryptoWallet Mini App", lifespan=lifespan)
    app.state.settings = app_settings

    # 配置CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # 注册路由
    app.include_router(auth_api.router, prefix="/api/auth", tags=["auth"])
    app.include_router(user_api.router, prefix="/api/user", tags=["user"])
    app.include_router(services_api.router, prefix="/api/services", tags=["services"])
    app.include_router(transactions_api.router, prefix="/api/transactions", tags=["transactions"])
    app.include_router(topup_api.router, prefix="/api/topup", tags=["topup"])
    app.include_router(ip_api.router, prefix="/api/ip", tags=["ip"])
    app.include_router(phone_api.router, prefix="/api/phone", tags=["phone"])
    app.include_router(purchase_api.router, prefix="/api/service", tags=["services"])

    @app.get("/")
    async def root():
        return {"message": "CryptoWallet Mini App API"}

    @app.get("/health")
    async def health_check():
        return {"status": "operational", "service": app.title}

    @app.websocket("/ws/user/{user_id}")
    async def websocket_balance_events(websocket: WebSocket, user_id: int):
        # 仅用于余额推送，客户端发送的内容忽略
        try:
            await event_manager.connect(user_id, websocket)
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            event_manager.disconnect(user_id, websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=default_settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
