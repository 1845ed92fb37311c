from webwhisper.query.messages import extract_latest_user_message


class TestExtractLatestUserMessage:
    def test_returns_latest_user_turn(self) -> None:
        messages = [
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "an answer"},
            {"role": "user", "content": "  follow-up question "},
            {"role": "assistant", "content": "another answer"},
        ]
        assert extract_latest_user_message(messages) == "follow-up question"

    def test_accepts_caller_role_and_text_key(self) -> None:
        messages = [{"role": "Caller", "text": "who runs the lab"}, {"role": "bot", "text": "hi"}]
        assert extract_latest_user_message(messages) == "who runs the lab"

    def test_skips_empty_user_turns(self) -> None:
        messages = [{"role": "user", "message": "real question"}, {"role": "user", "content": ""}]
        assert extract_latest_user_message(messages) == "real question"

    def test_falls_back_to_any_turn(self) -> None:
        messages = [{"role": "system", "content": "transcript"}, {"content": "unattributed"}]
        assert extract_latest_user_message(messages) == "unattributed"

    def test_empty(self) -> None:
        assert extract_latest_user_message(None) is None
        assert extract_latest_user_message([]) is None
        assert extract_latest_user_message([{}, {"role": "user"}]) is None
