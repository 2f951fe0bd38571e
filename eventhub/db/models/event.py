from tortoise import fields
from tortoise.validators import MinValueValidator
from eventhub.db.models.abstract_model import BaseModel
from eventhub.db.models.user import User
from eventhub.domain import EventCategory, EventStatus


class Event(BaseModel):
    title = fields.CharField(max_length=100, index=True)
    description = fields.TextField()
    category = fields.CharEnumField(EventCategory, max_length=50, index=True)
    date = fields.DateField(index=True)
    time = fields.TimeField()
    location = fields.CharField(max_length=200)
    image = fields.CharField(max_length=500, default="")

    # Capacity; tickets_sold <= ticket_limit is enforced by the domain record
    ticket_limit = fields.IntField(validators=[MinValueValidator(1)])
    tickets_sold = fields.IntField(default=0, validators=[MinValueValidator(0)])
    price = fields.FloatField(default=0, validators=[MinValueValidator(0)])

    organizer: fields.ForeignKeyRelation[User] = fields.ForeignKeyField(
        "server.User",
        related_name="organized_events"
    )
    organizer_name = fields.CharField(max_length=50, default="")

    # Users registered for this event
    attendees: fields.ManyToManyRelation[User] = fields.ManyToManyField(
        "server.User",
        related_name="attended_events",
        through="event_attendees",
        forward_key="user_id",
        backward_key="event_id"
    )

    status = fields.CharEnumField(EventStatus, max_length=20, default=EventStatus.ACTIVE, index=True)
    tags = fields.JSONField(default=list)
    featured = fields.BooleanField(default=False)
    registration_deadline = fields.DatetimeField(null=True)
    max_attendees_per_user = fields.IntField(default=1)
    refund_policy = fields.CharField(max_length=500, null=True)
    contact_email = fields.CharField(max_length=255, null=True)
    contact_phone = fields.CharField(max_length=30, null=True)
    venue_details = fields.CharField(max_length=1000, null=True)
    requirements = fields.CharField(max_length=1000, null=True)

    class Meta:
        table = "events"
        indexes = [
            ("date", "status"),
        ]

    def __str__(self):
        return f"{self.title} ({self.date})"
