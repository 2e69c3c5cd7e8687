# prelab/main.py
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prelab.api.quiz_routes import get_quiz_manager, router
from prelab.config import CORS_ALLOW_ORIGINS, PORT

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="PreLab Study Assistant")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.on_event("startup")
async def startup_event():
    # fan published quizzes out to websocket rooms
    await get_quiz_manager().start_listener()


@app.on_event("shutdown")
async def shutdown_event():
    await get_quiz_manager().stop_listener()


@app.get("/")
async def health():
    return {"message": "Healthy"}


if __name__ == "__main__":
    uvicorn.run("prelab.main:app", host="0.0.0.0", port=PORT)
