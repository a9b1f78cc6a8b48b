from drivestats_admin.services.composer import compose_notification
from drivestats_admin.services.push_types import NotificationPayload


def test_defaults():
    notification = compose_notification(NotificationPayload(title="Hi", body="There"), "com.example.app")

    assert notification.topic == "com.example.app"
    assert notification.to_message() == {
        "aps": {
            "alert": {"title": "Hi", "body": "There"},
            "sound": "default",
            "content-available": 1,
            "mutable-content": 1,
        },
    }


def test_badge_only_when_given():
    without_badge = compose_notification(NotificationPayload(title="a", body="b"), "topic")
    zero_badge = compose_notification(NotificationPayload(title="a", body="b", badge=0), "topic")

    assert "badge" not in without_badge.to_message()["aps"]
    assert zero_badge.to_message()["aps"]["badge"] == 0


def test_custom_sound_and_data():
    payload = NotificationPayload(
        title="Night owl",
        body="You earned a badge",
        data={"badgeId": "night-owl", "nested": {"count": 2}},
        sound="chime.caf",
    )

    message = compose_notification(payload, "topic").to_message()

    assert message["aps"]["sound"] == "chime.caf"
    assert message["badgeId"] == "night-owl"
    assert message["nested"] == {"count": 2}


def test_custom_data_cannot_replace_aps():
    payload = NotificationPayload(title="a", body="b", data={"aps": {"alert": "spoofed"}})

    message = compose_notification(payload, "topic").to_message()

    assert message["aps"]["alert"] == {"title": "a", "body": "b"}
