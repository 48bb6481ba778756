# Import models here so Base.metadata sees every table.
from povhub.models.user import User  # noqa: F401

# Permission matrix
from povhub.models.role_permission import RolePermission  # noqa: F401

# PoVs, teams, approval workflows, launches
from povhub.models.team import Team, TeamMember  # noqa: F401
from povhub.models.pov import Pov  # noqa: F401
from povhub.models.workflow import Workflow  # noqa: F401
from povhub.models.pov_launch import PovLaunch  # noqa: F401
