#app/schemas/response.py
from pydantic import BaseModel, Field

class MessageResponse(BaseModel):
    message: str = Field(..., example="Action completed successfully")
