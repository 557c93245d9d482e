# Namespace for pipeline steps
from .discover import DiscoverStep  # noqa: F401
from .verify import VerifyStep  # noqa: F401
from .enrich import EnrichStep  # noqa: F401
from .validate import ValidateStep  # noqa: F401
from .persist import PersistStep  # noqa: F401
