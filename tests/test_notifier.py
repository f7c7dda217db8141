from marketcart.services.notifier import NotificationLevel, Notifier


def test_notifications_are_recorded_in_order() -> None:
    notifier = Notifier()
    notifier.success("Order created")
    notifier.error("Failed to load cart")

    assert [(n.level, n.message) for n in notifier.history] == [
        (NotificationLevel.success, "Order created"),
        (NotificationLevel.error, "Failed to load cart"),
    ]
    assert notifier.has_errors() is True
    notifier.clear()
    assert notifier.has_errors() is False


def test_history_is_bounded_and_messages_truncated() -> None:
    notifier = Notifier(history_limit=2)
    for idx in range(3):
        notifier.info(f"message {idx}")
    long = notifier.info("x" * 400)

    assert len(long.message) == 255
    assert [n.message for n in notifier.history][0] == "message 2"


def test_listeners_are_isolated_and_can_unsubscribe() -> None:
    notifier = Notifier()
    received: list[str] = []

    def broken(_notification) -> None:
        raise RuntimeError("boom")

    notifier.subscribe(broken)
    unsubscribe = notifier.subscribe(lambda n: received.append(n.message))
    notifier.info("first")
    unsubscribe()
    notifier.info("second")

    assert received == ["first"]
