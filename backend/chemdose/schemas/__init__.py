from chemdose.schemas.tank import TankCreate, TankUpdate, TankResponse, TankReorder, TankOrderItem, TankStatus
from chemdose.schemas.reading import ReadingCreate, ReadingBatchCreate, ReadingUpdate, ReadingResponse, AnomalyResponse
from chemdose.schemas.supply import SupplyCreate, SupplyUpdate, SupplyResponse
from chemdose.schemas.parameters import (
    CWSParamCreate, CWSParamUpdate, CWSParamResponse, BWSParamCreate, BWSParamUpdate, BWSParamResponse,
)
from chemdose.schemas.annotations import (
    AlertCreate, AlertNote, AlertResponse, BatchDelete, NoteCreate, NoteUpdate, NoteResponse,
)

__all__ = [
    "TankCreate", "TankUpdate", "TankResponse", "TankReorder", "TankOrderItem", "TankStatus",
    "ReadingCreate", "ReadingBatchCreate", "ReadingUpdate", "ReadingResponse", "AnomalyResponse",
    "SupplyCreate", "SupplyUpdate", "SupplyResponse",
    "CWSParamCreate", "CWSParamUpdate", "CWSParamResponse",
    "BWSParamCreate", "BWSParamUpdate", "BWSParamResponse",
    "AlertCreate", "AlertNote", "AlertResponse", "BatchDelete", "NoteCreate", "NoteUpdate", "NoteResponse",
]
