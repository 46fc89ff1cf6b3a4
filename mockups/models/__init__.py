from mockups.models.asset import Asset
from mockups.models.base import Base
from mockups.models.figma_import import FigmaImport
from mockups.models.flow import Flow, FlowFrame

__all__ = [
    "Base",
    "Asset",
    "FigmaImport",
    "Flow",
    "FlowFrame",
]
