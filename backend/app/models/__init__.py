# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# Sans cet import, les FK comme ronda_marcaciones.execution_id → ronda_ejecuciones.id
# échouent avec NoReferencedTableError si round_execution.py n'est pas chargé.

from app.models.checkpoint import Checkpoint  # noqa: F401  (doit précéder round_template)
from app.models.round_template import RoundTemplate, RoundTemplateCheckpoint  # noqa: F401
from app.models.round_execution import RoundExecution  # noqa: F401
from app.models.checkpoint_scan import CheckpointScan  # noqa: F401
from app.models.round_alert import RoundAlert  # noqa: F401
