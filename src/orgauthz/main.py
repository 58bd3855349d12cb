from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from orgauthz.api.errors import register_error_handlers
from orgauthz.api.routes.authorization import router as authorization_router
from orgauthz.api.routes.organizations import router as organizations_router
from orgauthz.logging_config import configure_logging
from orgauthz.tracing import configure_tracing

# ------------------------------------------------------------------
# Configure Observability
# ------------------------------------------------------------------
configure_logging()
configure_tracing()

app = FastAPI(title="orgauthz")

app.include_router(authorization_router)
app.include_router(organizations_router)

register_error_handlers(app)

# ------------------------------------------------------------------
# Observability
# ------------------------------------------------------------------
FastAPIInstrumentor.instrument_app(app)
Instrumentator().instrument(app).expose(app)


# ------------------------------------------------------------------
# Health Check
# ------------------------------------------------------------------
@app.get("/health")
def health_check():
    return {"status": "ok"}
