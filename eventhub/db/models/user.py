from tortoise import fields
from eventhub.db.models.abstract_model import BaseModel
from eventhub.domain import UserRole


class User(BaseModel):
    email = fields.CharField(max_length=255, unique=True, index=True)
    name = fields.CharField(max_length=50)
    hashed_password = fields.CharField(max_length=255)
    role = fields.CharEnumField(UserRole, max_length=20, default=UserRole.ATTENDEE, index=True)
    avatar = fields.CharField(max_length=500, default="")
    bio = fields.CharField(max_length=500, default="")
    phone = fields.CharField(max_length=30, default="")
    is_verified = fields.BooleanField(default=False)
    last_login = fields.DatetimeField(null=True)

    class Meta:
        table = "users"

    def __str__(self):
        return f"{self.name} ({self.email})"
