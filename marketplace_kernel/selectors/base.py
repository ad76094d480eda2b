"""
Read side of the kernel.

A selector borrows the caller's session, runs queries and hands back frozen
DTOs (``EngagementInfo``, ``NegotiationInfo``, ...), never ORM instances.  It
does not add, delete, flush or commit; the unit of work that opened the
session decides when anything is written.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from marketplace_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session
