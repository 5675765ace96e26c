import os
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from services.user_management.controllers.school_service import router as school_router
from services.timetable_management.controllers.schedule_service import router as schedule_router
from services.attendance_management_system.controllers.attendance_service import router as attendance_router
from services.exam_management.controllers.exam_service import router as exam_router
from services.exam_management.controllers.exam_timetable_service import router as exam_timetable_router
from shared.app_logger import get_logger

log = get_logger()

app = FastAPI(title="SchoolOps Core")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def health_check():
    return {"status": "SchoolOps Core is running"}


app.include_router(school_router)
app.include_router(schedule_router)
app.include_router(attendance_router)
app.include_router(exam_router)
app.include_router(exam_timetable_router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    log.info("Starting SchoolOps Core on port %d", port)
    uvicorn.run("main:app", host="0.0.0.0", port=port)
