"""Catalog matchers: category keywords and branch locations."""

from complaint_engine.matchers.branch_resolver import BranchResolver
from complaint_engine.matchers.categorizer import Categorizer

__all__ = ["BranchResolver", "Categorizer"]
