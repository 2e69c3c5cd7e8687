# prelab/quiz_manager.py
import json
import asyncio
import logging
from typing import Dict, Optional, Set
from uuid import uuid4

from fastapi import WebSocket
import redis.asyncio as redis

from prelab.config import REDIS_URL
from prelab.schemas import QuizResult

logger = logging.getLogger(__name__)

PUBSUB_CHANNEL_PREFIX = "quiz_channel:"  # one channel per quiz room


class QuizManager:
    """
    Hands assembled quizzes to their consumers.

    Each quiz is published on its own Redis channel; a single pattern
    subscription fans every message out to the WebSocket clients in that
    quiz's room. Nothing is stored.
    """
    def __init__(self, redis_url: str = REDIS_URL, client: Optional[redis.Redis] = None):
        self.redis = client or redis.from_url(redis_url, decode_responses=True)
        # quiz_id -> connected sockets
        self.connections: Dict[str, Set[WebSocket]] = {}
        self._pubsub_task: Optional[asyncio.Task] = None
        logger.info(f"QuizManager initialized with Redis URL: {redis_url}")

    async def start_listener(self):
        """Starts the background Redis PubSub listener task."""
        if self._pubsub_task and not self._pubsub_task.done():
            logger.info("PubSub listener already running.")
            return
        logger.info("Starting Redis PubSub listener...")
        self._pubsub_task = asyncio.create_task(self._listen_pubsub())
        self._pubsub_task.add_done_callback(self._handle_listener_completion)

    async def stop_listener(self):
        if self._pubsub_task and not self._pubsub_task.done():
            self._pubsub_task.cancel()
            try:
                await self._pubsub_task
            except asyncio.CancelledError:
                pass
        self._pubsub_task = None

    def _handle_listener_completion(self, task: asyncio.Task):
        try:
            task.result()
            logger.info("PubSub listener task finished cleanly.")
        except asyncio.CancelledError:
            logger.info("PubSub listener task was cancelled.")
        except Exception:
            logger.exception("PubSub listener task failed unexpectedly!")

    async def _listen_pubsub(self):
        async with self.redis.pubsub() as ps:
            await ps.psubscribe(f"{PUBSUB_CHANNEL_PREFIX}*")
            logger.info(f"Subscribed to Redis channels pattern: {PUBSUB_CHANNEL_PREFIX}*")
            while True:
                try:
                    message = await ps.get_message(ignore_subscribe_messages=True, timeout=1.0)
                    if message is None:
                        await asyncio.sleep(0.01)
                        continue
                    if message.get("type") == "pmessage":
                        data = message.get("data")
                        if isinstance(data, bytes):
                            data = data.decode()
                        await self.broadcast(message.get("channel"), data)
                except redis.ConnectionError:
                    logger.error("Redis connection error in listener. Re-subscribing in 5s.")
                    await asyncio.sleep(5)
                    await ps.psubscribe(f"{PUBSUB_CHANNEL_PREFIX}*")
                except Exception:
                    logger.exception("Error in Redis listener loop.")
                    await asyncio.sleep(1)

    @staticmethod
    def quiz_id_from_channel(channel: str) -> Optional[str]:
        if not channel or not channel.startswith(PUBSUB_CHANNEL_PREFIX):
            return None
        quiz_id = channel[len(PUBSUB_CHANNEL_PREFIX):].strip("<>")
        return quiz_id or None

    async def broadcast(self, channel: str, data: str):
        """Sends data to every socket in the room behind channel, dropping sockets that fail."""
        quiz_id = self.quiz_id_from_channel(channel)
        if quiz_id is None:
            logger.warning(f"Ignoring message from unexpected channel: {channel}")
            return

        active = list(self.connections.get(quiz_id, set()))
        if not active:
            logger.info(f"No active WebSocket connections for quiz_id: {quiz_id}")
            return

        logger.info(f"Broadcasting to {len(active)} connections for quiz_id: {quiz_id}")
        results = await asyncio.gather(*(ws.send_text(data) for ws in active), return_exceptions=True)

        dead = [ws for ws, result in zip(active, results) if isinstance(result, Exception)]
        for ws in dead:
            logger.warning(f"Failed to send to client for quiz {quiz_id}, disconnecting it.")
            await self.disconnect(quiz_id, ws)

    async def connect(self, quiz_id: str, websocket: WebSocket):
        await websocket.accept()
        self.connections.setdefault(quiz_id, set()).add(websocket)
        logger.info(f"Client connected to quiz_id: {quiz_id}. Connections: {len(self.connections[quiz_id])}")

    async def disconnect(self, quiz_id: str, websocket: WebSocket):
        conns = self.connections.get(quiz_id)
        if conns and websocket in conns:
            conns.remove(websocket)
            logger.info(f"Client disconnected from quiz_id: {quiz_id}. Remaining connections: {len(conns)}")
            if not conns:
                del self.connections[quiz_id]

        try:
            if websocket.client_state.name == "CONNECTED":
                await websocket.close()
        except RuntimeError as e:
            # already closing on the client side
            logger.debug(f"WebSocket for quiz {quiz_id} already closed: {e}")
        except Exception:
            logger.exception(f"Unexpected error closing WebSocket for quiz {quiz_id}")

    async def publish_quiz(self, result: QuizResult, quiz_id: Optional[str] = None) -> str:
        """Publishes an assembled quiz to its room channel. Returns the quiz id."""
        quiz_id = quiz_id or str(uuid4())
        channel = f"{PUBSUB_CHANNEL_PREFIX}{quiz_id}"
        message = json.dumps({"type": "QUIZ_DATA", "quiz_id": quiz_id, **result.model_dump()})
        logger.info(f"Publishing quiz data to Redis channel: {channel}")
        await self.redis.publish(channel, message)
        return quiz_id
