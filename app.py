import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from portal.db import engine
from portal.init_db import init_models
from portal.routers import (
    auth_router, teams_router, invites_router, spoc_router, users_router, jury_router,
    problem_statements_router, announcements_router, institutes_router
)
from portal.settings import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title="Hackathon Portal API",
    description="API портала хакатона: команды, SPOC, жюри и объявления",
    version="1.0.0"
)

# Настройка CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(teams_router)
app.include_router(invites_router)
app.include_router(spoc_router)
app.include_router(users_router)
app.include_router(jury_router)
app.include_router(problem_statements_router)
app.include_router(announcements_router)
app.include_router(institutes_router)


@app.on_event("startup")
async def startup_event():
    """Выполняется при запуске приложения"""
    await init_models(engine)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title="HackathonPortalAPI",
        version="1.0.0",
        description="API с JWT аутентификацией",
        routes=app.routes,
    )

    openapi_schema["components"]["securitySchemes"] = {
        "Bearer": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Enter your bearer token in the format **Bearer &lt;token&gt;**"
        }
    }

    openapi_schema["security"] = [{"Bearer": []}]

    public_paths = ["/auth/login", "/auth/register", "/auth/register-spoc", "/docs", "/openapi.json"]

    for path in openapi_schema["paths"]:
        if any(path.endswith(public_path) for public_path in public_paths):
            for method in openapi_schema["paths"][path]:
                if method.lower() in ["get", "post", "put", "delete", "patch"]:
                    openapi_schema["paths"][path][method]["security"] = []

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi
