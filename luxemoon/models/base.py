# luxemoon/models/base.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional, Union
from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

def _money_to_json(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)

# Decimal in Python, a plain number in JSON
Money = Annotated[Decimal, PlainSerializer(_money_to_json, return_type=Union[int, float], when_used="json")]

class ApiModel(BaseModel):
    """Base model serialised with camelCase keys"""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True
    )

class TimeStampedModel(ApiModel):
    """Base model with timestamp fields"""
    created_at: datetime
    updated_at: Optional[datetime] = None
