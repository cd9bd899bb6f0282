# routers/catalog.py
"""
Catalog API: projects and credit classes, read through to the registry.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_catalog
from schemas.registry import CreditClass, Project, ProjectStatus
from services.catalog_service import CatalogService

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/projects", response_model=List[Project], summary="List projects")
def list_projects(
     status: Optional[ProjectStatus] = Query(None, description="Filter by project status"),
     catalog: CatalogService = Depends(get_catalog),
):
     return catalog.list_projects(status)


@router.get("/projects/{project_id}", summary="Project with its classes and totals")
def get_project(project_id: str, catalog: CatalogService = Depends(get_catalog)):
     project = catalog.get_project(project_id)
     classes = catalog.project_classes(project_id)
     return {
          "project": project.model_dump(mode="json", by_alias=True),
          "classes": [c.model_dump(mode="json", by_alias=True) for c in classes],
          "summary": catalog.project_summary(project_id),
     }


@router.get("/classes", response_model=List[CreditClass], summary="List credit classes")
def list_classes(
     available: Optional[bool] = Query(None, description="Only classes with remaining supply"),
     catalog: CatalogService = Depends(get_catalog),
):
     return catalog.list_classes(available)


@router.get("/classes/{class_id}", response_model=CreditClass, summary="Get a credit class")
def get_class(class_id: str, catalog: CatalogService = Depends(get_catalog)):
     return catalog.get_class(class_id)
