from .base import (
    ProductStore,
    OrderStore,
    FailureStore,
    DeliveryStore,
    CheckpointStore,
    LedgerStore,
)
from .sql import (
    SqlProductStore,
    SqlOrderStore,
    SqlFailureStore,
    SqlDeliveryStore,
    SqlCheckpointStore,
    SqlLedgerStore,
)
