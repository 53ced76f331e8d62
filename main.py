import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from bootstrap import SUCCESS_MESSAGE, inspect_collection, run_bootstrap
from database import connect, load_config
from schemas import COLLECTIONS, INDEXES


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Bootstrap the database before serving; refuse to start if it fails."""
    config = load_config()
    client, db = connect(config)
    try:
        report = run_bootstrap(db, sync_validators=config.sync_validators)
        if not report.ok:
            for line in report.failure_lines():
                print(line, file=sys.stderr)
            raise RuntimeError(f"Database bootstrap failed: {len(report.failures)} step(s)")
        print(f"✅ {SUCCESS_MESSAGE}")

        app.state.config = config
        app.state.db = db
        yield
    finally:
        client.close()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def read_root():
    return {"message": "Hello from the restaurant database bootstrap!"}

@app.get("/test")
def test_database(request: Request):
    """Check database connectivity and whether the declared collections and indexes are in place"""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": {}
    }

    db = getattr(request.app.state, "db", None)
    if db is None:
        response["database"] = "⚠️  Available but not initialized"
        return response

    response["database_name"] = db.name
    try:
        db.command("ping")
        response["connection_status"] = "Connected"
        for spec in COLLECTIONS:
            response["collections"][spec.name] = inspect_collection(db, spec)
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
        return response

    healthy = all(
        c["exists"] and c["validator_matches"] and not c["missing_indexes"]
        for c in response["collections"].values()
    )
    response["database"] = "✅ Connected & Working" if healthy else "⚠️  Connected but schema drifted"
    return response

@app.get("/api/database/schemas")
def get_all_schemas():
    """
    Expose the declared collection validators and indexes
    """
    return {
        "ok": True,
        "collections": {spec.name: spec.validator for spec in COLLECTIONS},
        "indexes": [
            {"collection": spec.collection, "name": spec.name, "keys": spec.keys, **spec.options()}
            for spec in INDEXES
        ],
    }

@app.get("/api/database/schemas/{collection_name}")
def get_collection_schema(collection_name: str):
    for spec in COLLECTIONS:
        if spec.name == collection_name:
            return {"ok": True, "collection": spec.name, "validator": spec.validator}
    raise HTTPException(status_code=404, detail=f"Collection '{collection_name}' not declared")

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
