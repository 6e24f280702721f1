from fcinq_engine.chat.intent_parser import parse_intent


def test_plain_text_is_generate():
    intent = parse_intent("  red shoes  ")
    assert intent.action == "generate"
    assert intent.prompt == "red shoes"


def test_blank_is_noop():
    assert parse_intent("   ").action == "noop"


def test_parse_intent_video_on_off():
    assert parse_intent("/video on").command_args["enabled"] is True
    assert parse_intent("/video off").command_args["enabled"] is False


def test_parse_intent_bare_video_toggles():
    intent = parse_intent("/video")
    assert intent.action == "set_video_mode"
    assert intent.command_args == {"enabled": None, "arg": ""}


def test_parse_intent_upload_quoted_paths():
    intent = parse_intent('/upload "/tmp/a b.png" /tmp/c.png')
    assert intent.action == "upload"
    assert intent.command_args["paths"] == ["/tmp/a b.png", "/tmp/c.png"]


def test_parse_intent_select_index():
    assert parse_intent("/select 3").command_args["index"] == 3
    assert parse_intent("/select three").command_args["index"] is None


def test_parse_intent_download_optional_index():
    assert parse_intent("/download").command_args["index"] is None
    assert parse_intent("/download 2").command_args["index"] == 2


def test_parse_intent_model_raw():
    intent = parse_intent("/model imagen4")
    assert intent.action == "set_model"
    assert intent.command_args["value"] == "imagen4"


def test_parse_intent_plan_keeps_prompt():
    intent = parse_intent("/plan luxury eyewear")
    assert intent.action == "preview"
    assert intent.prompt == "luxury eyewear"


def test_parse_intent_unknown_command():
    intent = parse_intent("/teleport now")
    assert intent.action == "unknown"
    assert intent.command_args == {"command": "teleport", "arg": "now"}
