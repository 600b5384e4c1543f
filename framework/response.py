from typing import Any, Optional
from pydantic import BaseModel
from framework.repository.pagination import PaginatedList

class ResponseModel(BaseModel):
    code: int = 200
    message: str = "success"
    data: Optional[Any] = None

    @staticmethod
    def success(data: Any = None):
        return {"code": 200, "message": "success", "data": data}

    @staticmethod
    def fail(code: int = 400, message: str = "error", data: Any = None):
        return {"code": code, "message": message, "data": data}

    @staticmethod
    def page(page: PaginatedList, items: list):
        """Envelope for one page; `items` are the already serialized page items."""
        return ResponseModel.success(data={
            "items": items,
            "page_index": page.page_index,
            "page_size": page.page_size,
            "total_count": page.total_count,
            "total_pages": page.total_pages,
            "has_previous_page": page.has_previous_page,
            "has_next_page": page.has_next_page,
        })
