from tortoise import fields, models


class TimestampMixin:
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)


class BaseModel(models.Model, TimestampMixin):
    id = fields.IntField(pk=True)

    class Meta:
        abstract = True
