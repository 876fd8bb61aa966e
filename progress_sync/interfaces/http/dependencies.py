from fastapi import Depends, Request

from ...application.progress_tracker import ProgressTracker
from ...bootstrap import Container
from ...infrastructure.catalog import CatalogClient

def get_container(request: Request) -> Container:
    return request.app.state.container

def get_tracker(container: Container = Depends(get_container)) -> ProgressTracker:
    return container.tracker

def get_catalog(container: Container = Depends(get_container)) -> CatalogClient:
    return container.catalog
