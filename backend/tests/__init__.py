# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from bracket_engine.models.bracket import Bracket  # noqa: F401
from bracket_engine.models.event import Event  # noqa: F401
from bracket_engine.models.match import Match  # noqa: F401
from bracket_engine.models.registration import Registration  # noqa: F401
from bracket_engine.models.result import Result  # noqa: F401
