from chemdose.models.tank import Tank, SystemType, ShapeType, HeadType, InputUnit, CalculationMethod
from chemdose.models.reading import Reading
from chemdose.models.chemical_supply import ChemicalSupply
from chemdose.models.parameters import CWSParameterRecord, BWSParameterRecord
from chemdose.models.annotations import FluctuationAlert, ImportantNote

__all__ = [
    "Tank",
    "SystemType",
    "ShapeType",
    "HeadType",
    "InputUnit",
    "CalculationMethod",
    "Reading",
    "ChemicalSupply",
    "CWSParameterRecord",
    "BWSParameterRecord",
    "FluctuationAlert",
    "ImportantNote",
]
