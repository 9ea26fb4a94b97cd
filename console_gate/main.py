import logging

from fastapi import FastAPI
from console_gate.core.config import settings
from console_gate.core.middleware import AuditMiddleware
from console_gate.core.upstream import close_http_client, get_http_client
from console_gate.api import health, bootstrap, session

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(bootstrap.router)
app.include_router(session.router)

@app.on_event("startup")
async def startup_event():
    get_http_client()

@app.on_event("shutdown")
async def shutdown_event():
    await close_http_client()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
