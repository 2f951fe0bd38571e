# eventhub/api/events/events.py
from fastapi import APIRouter, Depends, status
from typing import List, Literal, Optional
from datetime import date

from eventhub.db.models import User
from eventhub.api.schemas import (
    ApiResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    ListPage,
    MessageResponse,
)
from eventhub.api.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_event_service,
)
from eventhub.domain import EventCategory, EventDraft, EventRecord, EventStatus
from eventhub.services.event import EventService
from eventhub.stores import EventFilter

router = APIRouter(prefix="/events", tags=["events"])

SortOption = Literal["date", "date-desc", "price", "price-desc", "created"]


async def _render(
        service: EventService,
        events: List[EventRecord],
        viewer: Optional[User] = None,
) -> List[EventResponse]:
    people = await service.load_people(events)
    viewer_id = viewer.id if viewer else None
    return [EventResponse.from_record(event, people, viewer_id) for event in events]


# page and limit come from ListParams, injected by add_pagination
@router.get("/", response_model=ListPage[EventResponse])
async def get_events(
        category: Optional[EventCategory] = None,
        location: Optional[str] = None,
        search: Optional[str] = None,
        date: Optional[date] = None,
        status: EventStatus = EventStatus.ACTIVE,
        featured: Optional[bool] = None,
        sort: SortOption = "date",
        current_user: Optional[User] = Depends(get_current_user_optional),
        service: EventService = Depends(get_event_service),
):
    filters = EventFilter(
        status=status,
        category=category,
        location=location,
        search=search,
        date=date,
        featured=featured,
    )

    async def render(events: List[EventRecord]) -> List[EventResponse]:
        return await _render(service, events, current_user)

    return await service.list_events(filters, sort=sort, transformer=render)


# Declared before /{event_id} so "user" is not parsed as an id
@router.get("/user/me", response_model=ApiResponse[List[EventResponse]])
async def get_my_events(
        type: Literal["all", "created", "registered"] = "all",
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    events = await service.get_user_events(current_user, type)
    return ApiResponse(data=await _render(service, events, current_user))


@router.get("/{event_id}", response_model=ApiResponse[EventResponse])
async def get_event(
        event_id: int,
        current_user: Optional[User] = Depends(get_current_user_optional),
        service: EventService = Depends(get_event_service),
):
    event = await service.get_event(event_id)
    rendered = await _render(service, [event], current_user)
    return ApiResponse(data=rendered[0])


@router.post("/", response_model=ApiResponse[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event(
        event_data: EventCreate,
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    values = event_data.model_dump()
    values["tags"] = tuple(values["tags"])
    event = await service.create_event(EventDraft(**values), current_user)

    rendered = await _render(service, [event], current_user)
    return ApiResponse(data=rendered[0], message="Event created successfully")


@router.put("/{event_id}", response_model=ApiResponse[EventResponse])
async def update_event(
        event_id: int,
        event_data: EventUpdate,
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    event = await service.update_event(event_id, event_data.changes(), current_user)

    rendered = await _render(service, [event], current_user)
    return ApiResponse(data=rendered[0], message="Event updated successfully")


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
        event_id: int,
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    await service.delete_event(event_id, current_user)
    return MessageResponse(message="Event deleted successfully")


@router.post("/{event_id}/register", response_model=ApiResponse[EventResponse])
async def register_for_event(
        event_id: int,
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    event = await service.register_for_event(event_id, current_user)

    rendered = await _render(service, [event], current_user)
    return ApiResponse(data=rendered[0], message="Successfully registered for event")


@router.delete("/{event_id}/register", response_model=ApiResponse[EventResponse])
async def unregister_from_event(
        event_id: int,
        current_user: User = Depends(get_current_user),
        service: EventService = Depends(get_event_service),
):
    event = await service.unregister_from_event(event_id, current_user)

    rendered = await _render(service, [event], current_user)
    return ApiResponse(data=rendered[0], message="Successfully unregistered from event")
