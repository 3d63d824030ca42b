from fastapi import APIRouter
from app.routers import (
    auth, admin, notifications, leave, leave_manager,
    substitutes, directory, attendance, payroll, jobs
)

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(admin.router, tags=["Administration"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(leave_manager.router, tags=["Leave Manager"])
api_router.include_router(substitutes.router, tags=["Substitutes"])
api_router.include_router(directory.router, tags=["Directory"])
api_router.include_router(attendance.router, tags=["Attendance"])
api_router.include_router(payroll.router, tags=["Payroll"])
api_router.include_router(jobs.router, tags=["Jobs"])
