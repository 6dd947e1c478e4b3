"""
Customer HTTP Routes
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from shared.http import success_response

from .domain import CustomerListResult, CustomerStatus, ListCustomersParams, SearchCustomersParams
from .handlers import CreateCustomerCommand, DeleteCustomerCommand, UpdateCustomerCommand


class CreateCustomerRequest(BaseModel):
    name: str
    email: str


class UpdateCustomerRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


def _list_response(result: CustomerListResult) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder({
        "success": True,
        "data": result.customers,
        "pagination": result.pagination,
    }))


def build_customer_router(handlers) -> APIRouter:
    """
    Build the ``/customers`` route group.

    Args:
        handlers: Object exposing the customer command and query handlers
    """
    router = APIRouter(prefix="/customers", tags=["customers"])

    @router.post("", status_code=201)
    async def create_customer(request: CreateCustomerRequest):
        view = await handlers.create.handle(CreateCustomerCommand(name=request.name, email=request.email))
        return success_response(view, status_code=201)

    @router.get("")
    async def list_customers(
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        status: Optional[CustomerStatus] = None,
        include_deleted: bool = False,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        updated_after: Optional[datetime] = None,
        updated_before: Optional[datetime] = None,
    ):
        params = ListCustomersParams(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            status=status,
            include_deleted=include_deleted,
            created_after=created_after,
            created_before=created_before,
            updated_after=updated_after,
            updated_before=updated_before,
        )
        return _list_response(await handlers.list.handle(params))

    @router.get("/search")
    async def search_customers(
        q: str = Query("", description="Matches name or email"),
        email: str = "",
        first_name: str = "",
        last_name: str = "",
        status: Optional[CustomerStatus] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ):
        params = SearchCustomersParams(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            status=status,
            query=q,
            email=email,
            first_name=first_name,
            last_name=last_name,
        )
        return _list_response(await handlers.search.handle(params))

    @router.get("/{customer_id}")
    async def get_customer(customer_id: str):
        return success_response(await handlers.get.handle(customer_id))

    @router.patch("/{customer_id}")
    async def update_customer(customer_id: str, request: UpdateCustomerRequest):
        command = UpdateCustomerCommand(
            customer_id=customer_id,
            name=request.name,
            email=request.email,
            status=request.status,
        )
        return success_response(await handlers.update.handle(command))

    @router.delete("/{customer_id}", status_code=204)
    async def delete_customer(customer_id: str):
        await handlers.delete.handle(DeleteCustomerCommand(customer_id=customer_id))
        return Response(status_code=204)

    return router
