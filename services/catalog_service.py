# services/catalog_service.py
"""
Catalog Service - read-only view of projects and credit classes.

Pure read-through to the registry. Every result is a snapshot: remaining
supply can change between two calls, so callers that act on supply
(checkout) re-read the class immediately before acting.
"""
from typing import Optional

from schemas.registry import CreditClass, Project, ProjectStatus
from services.registry.base import RegistryPort


class CatalogService:
     """Class Ledger View over a RegistryPort."""

     def __init__(self, registry: RegistryPort):
          self.registry = registry

     def list_projects(self, status: Optional[ProjectStatus] = None) -> list[Project]:
          return self.registry.list_projects(status)

     def get_project(self, project_id: str) -> Project:
          return self.registry.get_project(project_id)

     def list_classes(self, only_available: Optional[bool] = None) -> list[CreditClass]:
          """
          List credit classes.

          ``only_available=True`` keeps classes with ``remaining > 0``; the
          filter is applied here as well as being passed to the registry.
          """
          classes = self.registry.list_classes(only_available)
          if only_available:
               classes = [c for c in classes if c.remaining > 0]
          return classes

     def get_class(self, class_id: str) -> CreditClass:
          return self.registry.get_class(class_id)

     def project_classes(self, project_id: str) -> list[CreditClass]:
          """Classes issued under one project, oldest vintage first."""
          self.registry.get_project(project_id)  # NotFoundError for unknown projects
          classes = [c for c in self.registry.list_classes() if c.project_id == project_id]
          return sorted(classes, key=lambda c: (c.vintage, c.id))

     def project_summary(self, project_id: str) -> dict:
          """
          Aggregate issued/retired/remaining over a project's classes.

          Returns:
               Dictionary with project totals and class counts
          """
          classes = self.project_classes(project_id)
          return {
               "project_id": project_id,
               "class_count": len(classes),
               "available_class_count": sum(1 for c in classes if c.is_purchasable),
               "issued": sum(c.issued for c in classes),
               "retired": sum(c.retired for c in classes),
               "remaining": sum(c.remaining for c in classes),
          }
