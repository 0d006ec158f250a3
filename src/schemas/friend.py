# src/schemas/friend.py
from pydantic import BaseModel, Field


class FriendRelation(BaseModel):
    """
    Связь дружбы между двумя пользователями (неориентированная).
    strength - вес близости; учитывается стратегией friendPreference,
    пары с strength <= 0 игнорируются.
    """
    user_id_1: str = Field(..., min_length=1)
    user_id_2: str = Field(..., min_length=1)
    strength: float = Field(default=1.0, description="Сила дружбы (обычно 0..1)")

    class Config:
        frozen = True
