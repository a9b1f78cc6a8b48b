import pytest
from sqlalchemy import func, select

from drivestats_admin.exceptions import InvalidPushRequest
from drivestats_admin.models import DeviceToken, NotificationPreferences
from drivestats_admin.services.push_types import NotificationType
from drivestats_admin.services.registration import DeviceRegistrationService


async def count_rows(session, model, *conditions):
    result = await session.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar()


class TestRegisterDeviceToken:
    async def test_register_twice_same_owner(self, session, fetch_token):
        service = DeviceRegistrationService(session)

        await service.register_device_token("u1", "tok-1", device_name="iPhone", app_version="2.0")
        await service.register_device_token("u1", "tok-1")

        assert await count_rows(session, DeviceToken, DeviceToken.device_token == "tok-1") == 1
        row = await fetch_token("tok-1")
        assert row.is_active is True
        assert row.user_id == "u1"
        assert row.device_type == "ios"
        # omitted fields keep their stored values
        assert row.device_name == "iPhone"
        assert row.app_version == "2.0"

    async def test_reregister_under_new_owner(self, session, fetch_token):
        service = DeviceRegistrationService(session)

        await service.register_device_token("u1", "tok-1")
        await service.register_device_token("u2", "tok-1", app_version="2.1")

        assert await count_rows(session, DeviceToken, DeviceToken.device_token == "tok-1") == 1
        row = await fetch_token("tok-1")
        assert row.user_id == "u2"
        assert row.app_version == "2.1"

    async def test_token_inserted_elsewhere_is_taken_over(self, session, session_factory, fetch_token):
        async with session_factory() as other:
            other.add(DeviceToken(user_id="u1", device_token="tok-1", is_active=False))
            await other.commit()

        record = await DeviceRegistrationService(session).register_device_token("u2", "tok-1")

        assert record.user_id == "u2"
        assert await count_rows(session, DeviceToken, DeviceToken.device_token == "tok-1") == 1
        row = await fetch_token("tok-1")
        assert row.user_id == "u2"
        assert row.is_active is True
        assert row.last_used_at is not None

    async def test_first_registration_is_not_marked_used(self, session):
        record = await DeviceRegistrationService(session).register_device_token("u1", "tok-1")

        assert record.id is not None
        assert record.is_active is True
        assert record.last_used_at is None

    async def test_reactivates_deactivated_token(self, session, add_token, fetch_token):
        await add_token("u1", "tok-1", is_active=False)

        await DeviceRegistrationService(session).register_device_token("u1", "tok-1")

        assert (await fetch_token("tok-1")).is_active is True

    async def test_creates_preferences_once(self, session):
        service = DeviceRegistrationService(session)

        await service.register_device_token("u1", "tok-1")
        await service.register_device_token("u1", "tok-2")

        assert await count_rows(
            session, NotificationPreferences, NotificationPreferences.user_id == "u1"
        ) == 1
        prefs = await service.get_preferences("u1")
        assert prefs.enable_announcements is True

    async def test_existing_preferences_are_not_reset(self, session):
        session.add(NotificationPreferences(user_id="u1", enable_drive_reminders=False))
        await session.commit()
        service = DeviceRegistrationService(session)

        await service.register_device_token("u1", "tok-1")

        session.expire_all()
        prefs = await service.get_preferences("u1")
        assert prefs.enable_drive_reminders is False

    @pytest.mark.parametrize("user_id,token", [("", "tok"), ("u1", ""), (None, "tok")])
    async def test_requires_user_and_token(self, session, user_id, token):
        with pytest.raises(InvalidPushRequest):
            await DeviceRegistrationService(session).register_device_token(user_id, token)


class TestUnregisterDeviceToken:
    async def test_deactivates_without_deleting(self, session, add_token, fetch_token):
        await add_token("u1", "tok-1")

        found = await DeviceRegistrationService(session).unregister_device_token("tok-1")

        assert found is True
        row = await fetch_token("tok-1")
        assert row is not None
        assert row.is_active is False

    async def test_unknown_token(self, session):
        assert await DeviceRegistrationService(session).unregister_device_token("missing") is False


class TestShouldSend:
    async def test_missing_preferences_fail_open(self, session):
        service = DeviceRegistrationService(session)

        assert await service.should_send("U", NotificationType.NIGHT_DRIVING) is True

    async def test_respects_disabled_category(self, session):
        session.add(NotificationPreferences(
            user_id="u1",
            enable_night_driving_alerts=False,
            enable_badge_notifications=True,
        ))
        await session.commit()
        service = DeviceRegistrationService(session)

        assert await service.should_send("u1", NotificationType.NIGHT_DRIVING) is False
        assert await service.should_send("u1", NotificationType.BADGE_EARNED) is True

    async def test_custom_always_allowed(self, session):
        session.add(NotificationPreferences(
            user_id="u1",
            enable_badge_notifications=False,
            enable_night_driving_alerts=False,
            enable_drive_reminders=False,
            enable_announcements=False,
        ))
        await session.commit()
        service = DeviceRegistrationService(session)

        assert await service.should_send("u1", NotificationType.CUSTOM) is True
        assert await service.should_send("u1", "custom") is True
        assert await service.should_send("u1", NotificationType.ANNOUNCEMENT) is False

    async def test_unknown_type_fails_open(self, session):
        session.add(NotificationPreferences(user_id="u1", enable_announcements=False))
        await session.commit()

        assert await DeviceRegistrationService(session).should_send("u1", "weekly_digest") is True
