"""业务服务层。"""

from eduhub.services.auth import AuthService
from eduhub.services.dashboard import DashboardService
from eduhub.services.student import StudentService
from eduhub.services.teacher import TeacherService

__all__ = ["AuthService", "DashboardService", "StudentService", "TeacherService"]
