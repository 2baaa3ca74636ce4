import logging

from shared.log import ColoredFormatter, GenericFormatter, get_logger


def make_record(msg, args=(), **extra):
    record = logging.LogRecord("battler.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_prefix_with_percent_and_args():
    record = make_record("Initial snapshot applied (%d players)", (1,), player_id="u%d")
    formatted = GenericFormatter(fmt="%(message)s").format(record)
    assert formatted == "[player=u%d] Initial snapshot applied (1 players)"


def test_context_prefix_with_percent_and_no_args():
    record = make_record("Connecting", endpoint="ws://h/a%20b")
    formatted = GenericFormatter(fmt="%(message)s").format(record)
    assert formatted == "[endpoint=ws://h/a%20b] Connecting"


def test_formatting_leaves_the_record_message_untouched():
    record = make_record("Received %s", ("frame",), phase="synced", msg_type="WorldUpdate")
    formatter = ColoredFormatter(fmt="%(message)s")
    assert formatter.format(record) == "[msg=WorldUpdate phase=synced] Received frame"
    assert record.msg == "Received %s"


def test_loggers_do_not_propagate_to_root():
    assert get_logger("battler.test.propagation").propagate is False
