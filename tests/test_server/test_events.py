# tests/test_server/test_events.py
import pytest
from httpx import AsyncClient
from tortoise.exceptions import ValidationError as ModelValidationError
from datetime import date, datetime, timedelta, timezone

from eventhub.db.models import Event
from eventhub.domain import EventCategory, EventStatus, UserRole


@pytest.mark.asyncio
class TestEventsAPI:
    """Тесты для API событий"""

    # ==================== СПИСОК И ПРОСМОТР ====================

    async def test_list_events_only_active_by_default(self, async_client: AsyncClient, organizer, make_event):
        """По умолчанию возвращаются только активные события"""
        org, _ = organizer
        await make_event(org, title="Active one")
        await make_event(org, title="Draft one", status=EventStatus.DRAFT)
        await make_event(org, title="Cancelled one", status=EventStatus.CANCELLED)

        response = await async_client.get("/api/events/")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["total"] == 1
        assert data["count"] == 1
        assert data["data"][0]["title"] == "Active one"

    async def test_list_events_status_filter(self, async_client: AsyncClient, organizer, make_event):
        """Фильтр по статусу"""
        org, _ = organizer
        await make_event(org, title="Draft one", status=EventStatus.DRAFT)

        response = await async_client.get("/api/events/", params={"status": "draft"})

        data = response.json()
        assert data["total"] == 1
        assert data["data"][0]["status"] == "draft"

    async def test_list_events_pagination(self, async_client: AsyncClient, organizer, make_event):
        """Пагинация: total, total_pages, current_page"""
        org, _ = organizer
        for i in range(5):
            await make_event(org, title=f"Event {i}", date=date.today() + timedelta(days=i + 1))

        response = await async_client.get("/api/events/", params={"page": 2, "limit": 2})

        data = response.json()
        assert data["total"] == 5
        assert data["total_pages"] == 3
        assert data["current_page"] == 2
        assert data["count"] == 2
        assert data["limit"] == 2
        # Сортировка по дате по умолчанию
        assert [event["title"] for event in data["data"]] == ["Event 2", "Event 3"]

    async def test_list_events_page_past_end(self, async_client: AsyncClient, organizer, make_event):
        """Страница за пределами списка пустая, total сохраняется"""
        org, _ = organizer
        await make_event(org)

        response = await async_client.get("/api/events/", params={"page": 5, "limit": 10})

        assert response.status_code == 200
        data = response.json()
        assert data["data"] == []
        assert data["count"] == 0
        assert data["total"] == 1
        assert data["total_pages"] == 1
        assert data["current_page"] == 5

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"page": 0}])
    async def test_list_events_invalid_page_params(self, async_client: AsyncClient, params):
        """Границы page и limit проверяются"""
        response = await async_client.get("/api/events/", params=params)

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_list_events_filters(self, async_client: AsyncClient, organizer, make_event):
        """Фильтры по категории, месту и поиску"""
        org, _ = organizer
        await make_event(org, title="Jazz Night", category=EventCategory.MUSIC, location="Paris")
        await make_event(org, title="PyCon", category=EventCategory.TECHNOLOGY, location="Berlin")
        await make_event(org, title="Food Fest", category=EventCategory.FOOD, location="berlin west")

        by_category = (await async_client.get("/api/events/", params={"category": "Music"})).json()
        assert [event["title"] for event in by_category["data"]] == ["Jazz Night"]

        by_location = (await async_client.get("/api/events/", params={"location": "BERLIN"})).json()
        assert {event["title"] for event in by_location["data"]} == {"PyCon", "Food Fest"}

        by_search = (await async_client.get("/api/events/", params={"search": "pycon"})).json()
        assert [event["title"] for event in by_search["data"]] == ["PyCon"]

    async def test_list_events_sort_by_price(self, async_client: AsyncClient, organizer, make_event):
        """Сортировка по цене по убыванию"""
        org, _ = organizer
        await make_event(org, title="Cheap", price=5)
        await make_event(org, title="Expensive", price=100)
        await make_event(org, title="Free", price=0)

        response = await async_client.get("/api/events/", params={"sort": "price-desc"})

        assert [event["title"] for event in response.json()["data"]] == ["Expensive", "Cheap", "Free"]

    async def test_list_events_invalid_sort(self, async_client: AsyncClient):
        """Неизвестная сортировка отклоняется"""
        response = await async_client.get("/api/events/", params={"sort": "likes"})

        assert response.status_code == 422

    async def test_get_event(self, async_client: AsyncClient, organizer, make_event):
        """Получение события с вычисляемыми полями"""
        org, _ = organizer
        event = await make_event(org, ticket_limit=3)

        response = await async_client.get(f"/api/events/{event.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == event.id
        assert data["organizer"]["id"] == org.id
        assert data["organizer"]["name"] == "Olga Organizer"
        assert data["tickets_sold"] == 0
        assert data["available_tickets"] == 3
        assert data["is_sold_out"] is False
        assert data["is_upcoming"] is True
        assert data["attendees"] == []
        assert data["is_registered"] is False

    async def test_get_event_is_registered_for_viewer(
            self, async_client: AsyncClient, organizer, attendee, make_event
    ):
        """Флаг is_registered вычисляется для текущего пользователя"""
        org, _ = organizer
        user, headers = attendee
        event = await make_event(org)
        await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        own_view = (await async_client.get(f"/api/events/{event.id}", headers=headers)).json()["data"]
        anonymous_view = (await async_client.get(f"/api/events/{event.id}")).json()["data"]

        assert own_view["is_registered"] is True
        assert [a["id"] for a in own_view["attendees"]] == [user.id]
        assert anonymous_view["is_registered"] is False

    async def test_get_event_not_found(self, async_client: AsyncClient):
        """Несуществующее событие"""
        response = await async_client.get("/api/events/99999")

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "EVENT_NOT_FOUND"

    # ==================== СОЗДАНИЕ ====================

    async def test_create_event_success(self, async_client: AsyncClient, organizer, event_payload):
        """Организатор создает событие"""
        org, headers = organizer

        response = await async_client.post(
            "/api/events/",
            headers=headers,
            json=event_payload(tags=["python", "asyncio"], featured=True),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Python Meetup"
        assert data["organizer"]["id"] == org.id
        assert data["organizer_name"] == org.name
        assert data["tickets_sold"] == 0
        assert data["attendees"] == []
        assert data["status"] == "active"
        assert data["tags"] == ["python", "asyncio"]
        assert data["featured"] is True

        assert await Event.filter(id=data["id"]).exists()

    async def test_create_event_as_draft(self, async_client: AsyncClient, organizer, event_payload):
        """Черновик сохраняет статус draft"""
        _, headers = organizer

        response = await async_client.post("/api/events/", headers=headers, json=event_payload(status="draft"))

        assert response.json()["data"]["status"] == "draft"

    async def test_create_event_other_status_becomes_active(
            self, async_client: AsyncClient, organizer, event_payload
    ):
        """Новое событие не может быть сразу отменено или завершено"""
        _, headers = organizer

        response = await async_client.post(
            "/api/events/", headers=headers, json=event_payload(status="cancelled")
        )

        assert response.json()["data"]["status"] == "active"

    async def test_create_event_as_admin(self, async_client: AsyncClient, admin, event_payload):
        """Администратор тоже может создавать события"""
        _, headers = admin

        response = await async_client.post("/api/events/", headers=headers, json=event_payload())

        assert response.status_code == 201

    async def test_create_event_as_attendee_forbidden(self, async_client: AsyncClient, attendee, event_payload):
        """Участник не может создавать события"""
        _, headers = attendee

        response = await async_client.post("/api/events/", headers=headers, json=event_payload())

        assert response.status_code == 403
        assert response.json()["error"] == "ROLE_NOT_PERMITTED"
        assert await Event.all().count() == 0

    async def test_create_event_unauthorized(self, async_client: AsyncClient, event_payload):
        """Создание события без токена"""
        response = await async_client.post("/api/events/", json=event_payload())

        assert response.status_code == 401

    async def test_create_event_invalid_ticket_limit(self, async_client: AsyncClient, organizer, event_payload):
        """Лимит билетов должен быть не меньше 1"""
        _, headers = organizer

        response = await async_client.post("/api/events/", headers=headers, json=event_payload(ticket_limit=0))

        assert response.status_code == 422
        assert "ticket_limit" in response.json()["details"]

    async def test_create_event_blank_title(self, async_client: AsyncClient, organizer, event_payload):
        """Название из пробелов отклоняется доменной валидацией"""
        _, headers = organizer

        response = await async_client.post("/api/events/", headers=headers, json=event_payload(title="   "))

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert "title" in data["details"]

    async def test_create_event_unknown_category(self, async_client: AsyncClient, organizer, event_payload):
        """Неизвестная категория"""
        _, headers = organizer

        response = await async_client.post(
            "/api/events/", headers=headers, json=event_payload(category="Astrology")
        )

        assert response.status_code == 422

    # ==================== ОБНОВЛЕНИЕ ====================

    async def test_update_event_by_owner(self, async_client: AsyncClient, organizer, make_event):
        """Организатор обновляет свое событие"""
        org, headers = organizer
        event = await make_event(org)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=headers,
            json={"title": "Renamed Meetup", "price": 20},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Renamed Meetup"
        assert data["price"] == 20
        assert data["description"] == "Talks about asyncio and FastAPI"

    async def test_update_event_by_other_user(self, async_client: AsyncClient, organizer, make_user, make_event):
        """Чужое событие нельзя обновить, оно остается прежним"""
        org, _ = organizer
        _, other_headers = await make_user("other-org@example.com", UserRole.ORGANIZER)
        event = await make_event(org)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=other_headers,
            json={"title": "Hijacked"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "FORBIDDEN"

        await event.refresh_from_db()
        assert event.title == "Python Meetup"

    async def test_update_event_by_admin(self, async_client: AsyncClient, organizer, admin, make_event):
        """Администратор может обновить любое событие"""
        org, _ = organizer
        _, admin_headers = admin
        event = await make_event(org)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=admin_headers,
            json={"status": "cancelled"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    async def test_update_ticket_limit_below_sold(
            self, async_client: AsyncClient, organizer, make_user, make_event
    ):
        """Лимит нельзя опустить ниже числа проданных билетов"""
        org, org_headers = organizer
        event = await make_event(org, ticket_limit=5)
        for i in range(3):
            _, headers = await make_user(f"fan{i}@example.com")
            await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=org_headers,
            json={"ticket_limit": 2},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert "ticket_limit" in data["details"]

        await event.refresh_from_db()
        assert event.ticket_limit == 5
        assert event.tickets_sold == 3

    @pytest.mark.parametrize("payload", [{"ticket_limit": 0}, {"price": -1}])
    async def test_update_out_of_range_values(self, async_client: AsyncClient, organizer, make_event, payload):
        """Недопустимые значения отклоняются схемой так же, как при создании"""
        org, headers = organizer
        event = await make_event(org, ticket_limit=5, price=10)

        response = await async_client.put(f"/api/events/{event.id}", headers=headers, json=payload)

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert set(data["details"]) == set(payload)

        await event.refresh_from_db()
        assert event.ticket_limit == 5
        assert event.price == 10

    async def test_update_ticket_limit_to_sold(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Лимит можно опустить до числа проданных билетов"""
        org, org_headers = organizer
        _, headers = attendee
        event = await make_event(org, ticket_limit=5)
        await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=org_headers,
            json={"ticket_limit": 1},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["ticket_limit"] == 1
        assert data["is_sold_out"] is True

    async def test_update_ignores_capacity_fields(self, async_client: AsyncClient, organizer, make_event):
        """Счетчик билетов и участники не меняются через обновление"""
        org, headers = organizer
        event = await make_event(org)

        response = await async_client.put(
            f"/api/events/{event.id}",
            headers=headers,
            json={"tickets_sold": 7, "attendees": [1, 2, 3], "description": "New text"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tickets_sold"] == 0
        assert data["attendees"] == []
        assert data["description"] == "New text"

    async def test_update_missing_event(self, async_client: AsyncClient, organizer):
        """Обновление несуществующего события"""
        _, headers = organizer

        response = await async_client.put("/api/events/99999", headers=headers, json={"title": "X"})

        assert response.status_code == 404

    # ==================== УДАЛЕНИЕ ====================

    async def test_delete_event_by_owner(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Организатор удаляет событие вместе с регистрациями"""
        org, headers = organizer
        _, attendee_headers = attendee
        event = await make_event(org)
        await async_client.post(f"/api/events/{event.id}/register", headers=attendee_headers)

        response = await async_client.delete(f"/api/events/{event.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert not await Event.filter(id=event.id).exists()

    async def test_delete_event_by_other_user(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Чужое событие нельзя удалить"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(org)

        response = await async_client.delete(f"/api/events/{event.id}", headers=headers)

        assert response.status_code == 401
        assert await Event.filter(id=event.id).exists()

    async def test_delete_event_by_admin(self, async_client: AsyncClient, organizer, admin, make_event):
        """Администратор удаляет любое событие"""
        org, _ = organizer
        _, headers = admin
        event = await make_event(org)

        response = await async_client.delete(f"/api/events/{event.id}", headers=headers)

        assert response.status_code == 200
        assert not await Event.filter(id=event.id).exists()

    # ==================== РЕГИСТРАЦИЯ ====================

    async def test_register_success(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Успешная регистрация на событие"""
        org, _ = organizer
        user, headers = attendee
        event = await make_event(org, ticket_limit=2)

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tickets_sold"] == 1
        assert data["available_tickets"] == 1
        assert [a["id"] for a in data["attendees"]] == [user.id]
        assert data["is_registered"] is True

        await event.refresh_from_db()
        assert event.tickets_sold == 1

    async def test_register_twice(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Повторная регистрация отклоняется, счетчик не меняется"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(org)
        await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "ALREADY_REGISTERED"

        await event.refresh_from_db()
        assert event.tickets_sold == 1

    async def test_register_sold_out(self, async_client: AsyncClient, organizer, attendee, make_user, make_event):
        """Регистрация на распроданное событие"""
        org, _ = organizer
        _, first_headers = attendee
        _, second_headers = await make_user("late@example.com")
        event = await make_event(org, ticket_limit=1)
        await async_client.post(f"/api/events/{event.id}/register", headers=first_headers)

        response = await async_client.post(f"/api/events/{event.id}/register", headers=second_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "SOLD_OUT"

        await event.refresh_from_db()
        assert event.tickets_sold == 1

    async def test_register_inactive_event(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Регистрация на отмененное событие"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(org, status=EventStatus.CANCELLED)

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "EVENT_NOT_ACTIVE"

    async def test_register_after_deadline(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Регистрация после дедлайна"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(
            org,
            registration_deadline=datetime.now(timezone.utc) - timedelta(hours=1),
        )

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "DEADLINE_PASSED"

        await event.refresh_from_db()
        assert event.tickets_sold == 0

    async def test_register_before_deadline(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Регистрация до дедлайна проходит"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(
            org,
            registration_deadline=datetime.now(timezone.utc) + timedelta(days=1),
        )

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 200

    async def test_organizer_cannot_register(self, async_client: AsyncClient, organizer, make_event):
        """Организатор не может зарегистрироваться на свое событие"""
        org, headers = organizer
        event = await make_event(org)

        response = await async_client.post(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "ORGANIZER_CANNOT_REGISTER"

    async def test_register_missing_event(self, async_client: AsyncClient, attendee):
        """Регистрация на несуществующее событие"""
        _, headers = attendee

        response = await async_client.post("/api/events/99999/register", headers=headers)

        assert response.status_code == 404

    async def test_register_unauthorized(self, async_client: AsyncClient, organizer, make_event):
        """Регистрация без токена"""
        org, _ = organizer
        event = await make_event(org)

        response = await async_client.post(f"/api/events/{event.id}/register")

        assert response.status_code == 401

    async def test_unregister_not_registered(self, async_client: AsyncClient, organizer, attendee, make_event):
        """Отмена регистрации без регистрации"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(org)

        response = await async_client.delete(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "NOT_REGISTERED"

        await event.refresh_from_db()
        assert event.tickets_sold == 0

    async def test_register_unregister_round_trip(
            self, async_client: AsyncClient, organizer, attendee, make_event
    ):
        """Регистрация и отмена возвращают событие в исходное состояние"""
        org, _ = organizer
        _, headers = attendee
        event = await make_event(org)
        before = (await async_client.get(f"/api/events/{event.id}")).json()["data"]

        await async_client.post(f"/api/events/{event.id}/register", headers=headers)
        response = await async_client.delete(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 200
        after = response.json()["data"]
        assert after["tickets_sold"] == before["tickets_sold"]
        assert after["attendees"] == before["attendees"]
        assert after["is_registered"] is False

    async def test_unregister_from_cancelled_event(
            self, async_client: AsyncClient, organizer, attendee, make_event
    ):
        """Отменить регистрацию можно при любом статусе события"""
        org, org_headers = organizer
        _, headers = attendee
        event = await make_event(org)
        await async_client.post(f"/api/events/{event.id}/register", headers=headers)
        await async_client.put(f"/api/events/{event.id}", headers=org_headers, json={"status": "cancelled"})

        response = await async_client.delete(f"/api/events/{event.id}/register", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["tickets_sold"] == 0

    async def test_last_ticket_scenario(self, async_client: AsyncClient, organizer, make_user, make_event):
        """Один билет: A занимает, B получает отказ, A освобождает, B занимает"""
        org, _ = organizer
        user_a, headers_a = await make_user("a@example.com")
        user_b, headers_b = await make_user("b@example.com")
        event = await make_event(org, ticket_limit=1)
        url = f"/api/events/{event.id}/register"

        first = await async_client.post(url, headers=headers_a)
        assert first.status_code == 200
        assert first.json()["data"]["tickets_sold"] == 1
        assert [a["id"] for a in first.json()["data"]["attendees"]] == [user_a.id]

        rejected = await async_client.post(url, headers=headers_b)
        assert rejected.status_code == 400
        assert rejected.json()["error"] == "SOLD_OUT"

        released = await async_client.delete(url, headers=headers_a)
        assert released.status_code == 200
        assert released.json()["data"]["tickets_sold"] == 0
        assert released.json()["data"]["attendees"] == []

        second = await async_client.post(url, headers=headers_b)
        assert second.status_code == 200
        assert [a["id"] for a in second.json()["data"]["attendees"]] == [user_b.id]

    # ==================== СОБЫТИЯ ПОЛЬЗОВАТЕЛЯ ====================

    async def test_user_events_by_type(self, async_client: AsyncClient, organizer, make_user, make_event):
        """Созданные, посещаемые и все события пользователя"""
        org, org_headers = organizer
        other_org, _ = await make_user("second-org@example.com", UserRole.ORGANIZER)
        own = await make_event(org, title="Own event", date=date.today() + timedelta(days=5))
        foreign = await make_event(other_org, title="Foreign event", date=date.today() + timedelta(days=2))
        await make_event(other_org, title="Unrelated event")

        await async_client.post(f"/api/events/{foreign.id}/register", headers=org_headers)

        async def titles(kind):
            response = await async_client.get("/api/events/user/me", headers=org_headers, params={"type": kind})
            assert response.status_code == 200
            return [event["title"] for event in response.json()["data"]]

        assert await titles("created") == ["Own event"]
        assert await titles("registered") == ["Foreign event"]
        # Все события отсортированы по дате
        assert await titles("all") == ["Foreign event", "Own event"]
        assert own.id != foreign.id

    async def test_user_events_requires_auth(self, async_client: AsyncClient):
        """События пользователя без токена"""
        response = await async_client.get("/api/events/user/me")

        assert response.status_code == 401

    async def test_user_events_invalid_type(self, async_client: AsyncClient, attendee):
        """Неизвестный тип списка"""
        _, headers = attendee

        response = await async_client.get("/api/events/user/me", headers=headers, params={"type": "liked"})

        assert response.status_code == 422


@pytest.mark.asyncio
class TestEventModel:
    """Ограничения модели события на уровне ORM"""

    @pytest.mark.parametrize("overrides", [{"ticket_limit": 0}, {"price": -5}])
    async def test_model_rejects_out_of_range_values(self, organizer, make_event, overrides):
        org, _ = organizer

        with pytest.raises(ModelValidationError):
            await make_event(org, **overrides)

        assert await Event.all().count() == 0
