from hrportal.schemas.common.base import BaseCommandSchema, BaseResponseSchema, BaseSchema

__all__ = ["BaseCommandSchema", "BaseResponseSchema", "BaseSchema"]
