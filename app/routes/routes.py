from fastapi import FastAPI

from app.controllers.auth_controller import router as auth_router
from app.controllers.booking_controller import router as booking_router
from app.controllers.review_controller import router as review_router
from app.controllers.tour_controller import router as tour_router


def include_app_routes(app: FastAPI) -> None:
	app.include_router(auth_router, prefix="/api")
	app.include_router(tour_router, prefix="/api")
	app.include_router(booking_router, prefix="/api")
	app.include_router(review_router, prefix="/api")
