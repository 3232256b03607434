# Models package: import all models here so Alembic can discover them.

from laneboard.models.user import User  # noqa: F401
from laneboard.models.project import Project, ProjectMember  # noqa: F401
from laneboard.models.task import Task  # noqa: F401
