"""API 路由包入口。"""

from fastapi import APIRouter

from eduhub.api import achievements, auth, contact, dashboard, student, teacher

router = APIRouter(prefix="/api")

# 注册子路由
router.include_router(auth.router, prefix="/auth", tags=["认证"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])
router.include_router(student.router, prefix="/student", tags=["学生"])
router.include_router(teacher.router, prefix="/teacher", tags=["教师"])
router.include_router(achievements.router, prefix="/achievements", tags=["成就"])
router.include_router(contact.router)
