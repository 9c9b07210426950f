"""
Response schemas for the order view.
"""
import datetime as dt
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict

from .base import PageMeta


class OrderRowRead(BaseModel):
    id: int
    order_code: str
    customer_name: str
    marketing_staff: str
    sales_staff: str
    team: str
    shift: str
    product: str
    market: str
    amount: float
    date: Optional[Union[dt.datetime, dt.date]] = None

    model_config = ConfigDict(from_attributes=True)


class OrderPage(PageMeta):
    items: List[OrderRowRead]
