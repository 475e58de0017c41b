import os
import time
import uuid
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from database import engine
from models import Base
from routes import appointments, automations, catalog, clients, closing, financial, products, setup

# Carrega as variáveis de ambiente
load_dotenv()

# -------------------------
# Configuração básica de logs
# -------------------------
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("salao")

# Criar tabelas
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Salão API",
    description="API de gestão do salão: agendamentos, clientes, produtos, financeiro e fechamento de caixa",
    version="1.0.0"
)

# -------------------------
# CORS dinâmico por ambiente
# -------------------------
allowed_origins_env = os.getenv("ALLOWED_ORIGINS")
if allowed_origins_env:
    origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]
else:
    origins = [os.getenv("FRONTEND_URL", "http://localhost:3000")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------
# Middleware de logging
# -------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    rid = str(uuid.uuid4())
    try:
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            "rid=%s method=%s path=%s status=%s duration_ms=%s",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "unknown"),
            duration_ms,
        )
        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
    except Exception as exc:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.exception(
            "rid=%s method=%s path=%s status=500 duration_ms=%s error=%s",
            rid, request.method, request.url.path, duration_ms, repr(exc)
        )
        raise

# Health check
@app.get("/health")
async def health_check():
    """Verificar status da API"""
    return {"status": "healthy", "message": "Salão API funcionando"}

# -------------------------
# Rotas
# -------------------------
app.include_router(clients.router, tags=["Clientes"])
app.include_router(appointments.router, prefix="/appointments", tags=["Agendamentos"])
app.include_router(catalog.router, prefix="/services", tags=["Serviços"])
app.include_router(products.router, prefix="/api/products", tags=["Produtos"])
app.include_router(financial.router, prefix="/api/financial", tags=["Financeiro"])
app.include_router(setup.router, prefix="/api", tags=["Configuração do banco"])
app.include_router(closing.router, prefix="/closing", tags=["Fechamento de caixa"])
app.include_router(automations.automations_router, prefix="/automations", tags=["Automações"])
app.include_router(automations.settings_router, prefix="/settings", tags=["Configurações"])
app.include_router(automations.whatsapp_router, prefix="/whatsapp", tags=["WhatsApp"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
