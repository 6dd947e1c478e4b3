"""
Customer Domain

The Customer aggregate, its Email value object, domain events and the
read-side types used by the query handlers.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from shared.aggregate import AggregateRoot
from shared.domain_errors import BusinessRuleError, ValidationError, ValidationErrors


AGGREGATE_TYPE = "customer"

# Event types
CUSTOMER_CREATED = "customer.created"
CUSTOMER_NAME_UPDATED = "customer.name_updated"
CUSTOMER_EMAIL_CHANGED = "customer.email_changed"
CUSTOMER_STATUS_CHANGED = "customer.status_changed"
CUSTOMER_DELETED = "customer.deleted"

EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$")
MAX_NAME_LENGTH = 255


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


@dataclass(frozen=True)
class Email:
    """Normalized (trimmed, lower-cased) email address."""
    value: str

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Email":
        email = (raw or "").strip().lower()
        if not email:
            raise ValidationError("email", "email is required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("email", "invalid email format", raw)
        return cls(email)

    def __str__(self) -> str:
        return self.value


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name", "name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("name", f"name must be at most {MAX_NAME_LENGTH} characters")
    return name


class Customer(AggregateRoot):
    """Customer aggregate root."""

    aggregate_type = AGGREGATE_TYPE

    def __init__(self, name: str, email: Email, status: CustomerStatus = CustomerStatus.ACTIVE, **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.email = email
        self.status = status

    @classmethod
    def create(cls, name: str, email: str) -> "Customer":
        """
        Create a new active customer and record ``customer.created``.

        Raises:
            ValidationErrors: If the name or email is invalid
        """
        errors = ValidationErrors()
        clean_name = None
        customer_email = None

        try:
            clean_name = _clean_name(name)
        except ValidationError as e:
            errors.append(e)

        try:
            customer_email = Email.parse(email)
        except ValidationError as e:
            errors.append(e)

        if errors.has_errors():
            raise errors

        customer = cls(clean_name, customer_email)
        customer.add_event(CUSTOMER_CREATED, {
            "customer_id": customer.id,
            "name": customer.name,
            "email": customer.email.value,
            "status": customer.status.value,
        })
        return customer

    def update_name(self, name: str) -> bool:
        name = _clean_name(name)
        if name == self.name:
            return False

        old_name = self.name
        self.name = name
        self.increment_version()
        self.add_event(CUSTOMER_NAME_UPDATED, {"customer_id": self.id, "old_name": old_name, "new_name": name})
        return True

    def change_email(self, email: str) -> bool:
        new_email = Email.parse(email)
        if new_email == self.email:
            return False

        old_email = self.email
        self.email = new_email
        self.increment_version()
        self.add_event(CUSTOMER_EMAIL_CHANGED, {
            "customer_id": self.id,
            "old_email": old_email.value,
            "new_email": new_email.value,
        })
        return True

    def _change_status(self, status: CustomerStatus) -> bool:
        if self.status == status:
            return False
        if self.is_deleted:
            raise BusinessRuleError("customer_deleted", f"cannot set status {status.value} on a deleted customer")

        old_status = self.status
        self.status = status
        self.increment_version()
        self.add_event(CUSTOMER_STATUS_CHANGED, {
            "customer_id": self.id,
            "old_status": old_status.value,
            "new_status": status.value,
        })
        return True

    def activate(self) -> bool:
        return self._change_status(CustomerStatus.ACTIVE)

    def deactivate(self) -> bool:
        return self._change_status(CustomerStatus.INACTIVE)

    def delete(self) -> bool:
        if self.is_deleted:
            return False

        self.status = CustomerStatus.DELETED
        self.increment_version()
        self.add_event(CUSTOMER_DELETED, {"customer_id": self.id, "email": self.email.value})
        return True

    @property
    def is_deleted(self) -> bool:
        return self.status == CustomerStatus.DELETED

    @property
    def is_active(self) -> bool:
        return self.status == CustomerStatus.ACTIVE


# Read side

SORT_FIELDS = ("id", "email", "name", "created_at", "updated_at")
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class CustomerView:
    id: str
    email: str
    name: str
    status: CustomerStatus
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_customer(cls, customer: Customer) -> "CustomerView":
        return cls(
            id=customer.id,
            email=customer.email.value,
            name=customer.name,
            status=customer.status,
            version=customer.version,
            created_at=customer.created_at,
            updated_at=customer.updated_at,
        )


@dataclass
class ListCustomersParams:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = "desc"
    status: Optional[CustomerStatus] = None
    include_deleted: bool = False
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    updated_after: Optional[datetime] = None
    updated_before: Optional[datetime] = None

    def normalize(self) -> None:
        """Clamp paging and fall back to default sorting instead of failing."""
        if self.page is None or self.page <= 0:
            self.page = 1
        if self.limit is None or self.limit <= 0:
            self.limit = DEFAULT_PAGE_SIZE
        self.limit = min(self.limit, MAX_PAGE_SIZE)
        if self.sort_by not in SORT_FIELDS:
            self.sort_by = DEFAULT_SORT_FIELD
        if self.sort_order not in ("asc", "desc"):
            self.sort_order = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class SearchCustomersParams(ListCustomersParams):
    query: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""


@dataclass
class PaginationResult:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationResult":
        total_pages = max(1, math.ceil(total / limit)) if limit else 1
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


@dataclass
class CustomerListResult:
    customers: List[CustomerView] = field(default_factory=list)
    pagination: Optional[PaginationResult] = None
