"""
Workflows module - Poll cycle orchestration.
"""
from workflows.dispatcher import Dispatcher
from workflows.pipeline_factory import (
    NewsPipeline,
    check_active_provider,
    create_pipeline,
    seed_default_destination,
)

__all__ = [
    "Dispatcher",
    "NewsPipeline",
    "check_active_provider",
    "create_pipeline",
    "seed_default_destination",
]
