# prelab/api/quiz_routes.py
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from redis.exceptions import RedisError

from prelab.errors import CreditsExhaustedError, LLMRequestError, QuizGenerationError
from prelab.evaluation import evaluate_quiz
from prelab.quiz_assembler import assemble_quiz
from prelab.quiz_manager import QuizManager
from prelab.schemas import ChatRequest, EvaluationRequest, ExplanationRequest, QuizRequest
from prelab.tutor import chat_tutor, generate_explanation, generate_feedback

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_quiz_manager() -> QuizManager:
    return QuizManager()


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, CreditsExhaustedError):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    if isinstance(exc, QuizGenerationError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/quizzes", status_code=status.HTTP_201_CREATED)
async def create_quiz(payload: QuizRequest, manager: QuizManager = Depends(get_quiz_manager)):
    try:
        quiz = await assemble_quiz(
            payload.subject_name,
            payload.module_title,
            payload.material_text,
            payload.question_count,
        )
    except (CreditsExhaustedError, QuizGenerationError) as exc:
        raise _http_error(exc) from exc

    try:
        quiz_id = await manager.publish_quiz(quiz)
    except (RedisError, OSError):
        # the quiz is still returned, it just has no live room
        logger.exception("Publishing assembled quiz failed")
        quiz_id = None
    warning = None
    if quiz.partial:
        warning = (
            f"Generated {quiz.generated_count}/{quiz.requested_count} questions due to API limits. "
            "You can still continue."
        )
    return {"quiz_id": quiz_id, "quiz": quiz.model_dump(), "warning": warning}


@router.post("/quizzes/evaluate")
async def evaluate(payload: EvaluationRequest):
    evaluated = evaluate_quiz(payload.questions, payload.answers)
    try:
        feedback = await generate_feedback(
            payload.module_title, evaluated.score, evaluated.weak_areas, evaluated.review
        )
    except (CreditsExhaustedError, LLMRequestError) as exc:
        raise _http_error(exc) from exc
    return {**evaluated.model_dump(), "feedback": feedback.model_dump()}


@router.post("/explanations")
async def explain(payload: ExplanationRequest):
    try:
        explanation = await generate_explanation(
            payload.subject_name, payload.module_title, payload.material_text, payload.topic
        )
    except (CreditsExhaustedError, LLMRequestError) as exc:
        raise _http_error(exc) from exc
    return {"explanation": explanation.model_dump()}


@router.post("/chat")
async def chat(payload: ChatRequest):
    try:
        reply = await chat_tutor(
            payload.subject_name, payload.module_title, payload.material_text, payload.history, payload.message
        )
    except (CreditsExhaustedError, LLMRequestError) as exc:
        raise _http_error(exc) from exc
    return {"reply": reply}


@router.websocket("/ws/{quiz_id}")
async def quiz_websocket(websocket: WebSocket, quiz_id: str):
    manager = get_quiz_manager()
    await manager.connect(quiz_id, websocket)
    try:
        while True:
            # clients only listen; anything they send is acknowledged
            text = await websocket.receive_text()
            await websocket.send_text(f"server echo: {text}")
    except WebSocketDisconnect:
        logger.info(f"Client disconnected from quiz {quiz_id}")
    finally:
        await manager.disconnect(quiz_id, websocket)
