from fastapi import APIRouter

from lms_quiz.api.v1.endpoints import auth, quizzes

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth")
# quiz routes span /quizzes, /lessons and /courses, so they carry full paths
api_router.include_router(quizzes.router)
