"""
API errors

Raised by services and endpoints; rendered by the handlers registered in main.py.
"""
from typing import Optional


class ApiError(Exception):
    status_code = 500
    title = "Internal Server Error"

    def __init__(self, detail: str, entity_name: Optional[str] = None, error_key: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.entity_name = entity_name
        self.error_key = error_key

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "entityName": self.entity_name,
            "errorKey": self.error_key,
        }


class BadRequestError(ApiError):
    """Request rejected before touching the store"""
    status_code = 400
    title = "Bad Request"


class EntityNotFoundError(ApiError):
    status_code = 404
    title = "Not Found"

    def __init__(self, entity_name: str, entity_id: str):
        super().__init__(f"{entity_name.capitalize()} not found with id {entity_id}", entity_name, "idnotfound")
        self.entity_id = entity_id
