# Import models here so SQLAlchemy sees them when creating tables
from prode.models.user import User  # noqa: F401
from prode.models.prediction import Prediction  # noqa: F401
from prode.models.tournament import Tournament, TournamentParticipant, RoundPoints  # noqa: F401
from prode.models.system_config import SystemConfig  # noqa: F401
from prode.models.cron_execution import CronJobExecution  # noqa: F401
