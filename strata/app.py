from fastapi import FastAPI
from strata.modules.system_endpoints import router as system_router

app = FastAPI(title="Strata", version="0.1.0")

app.include_router(system_router)


@app.get("/")
async def root():
    return {"status": "online", "system": "Strata"}
