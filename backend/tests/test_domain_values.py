import pytest

from chat_service.domain import ChatConfiguration, Model, get_token_counter, new_message, register_tokenizer
from chat_service.errors import InvalidConfigurationError, InvalidContentError


# ---- Model ----
def test_model_counts_with_registered_tokenizer():
    model = Model("m", 4096)
    assert model.capacity() == 4096
    assert model.token_count("You are helpful.") == 3


def test_registered_tokenizer_can_be_replaced():
    register_tokenizer("chars", len)
    assert Model("chars", 100).token_count("abcd") == 4
    register_tokenizer("chars", lambda text: 1)
    assert get_token_counter("chars")("abcd") == 1


def test_unknown_model_name_is_a_configuration_error():
    with pytest.raises(InvalidConfigurationError) as exc:
        Model("definitely-not-a-real-model", 1000)
    assert isinstance(exc.value.__cause__, KeyError)


def test_message_content_is_not_trimmed():
    msg = new_message("user", "  two words\n", Model("m", 100))
    assert msg.content == "  two words\n"
    assert msg.tokens == 2


@pytest.mark.parametrize("name,max_tokens", [("", 100), ("m", 0), ("m", -5)])
def test_model_rejects_bad_values(name, max_tokens):
    with pytest.raises(InvalidConfigurationError):
        Model(name, max_tokens)


def test_models_compare_by_name_and_capacity():
    assert Model("m", 100) == Model("m", 100)
    assert Model("m", 100) != Model("m", 200)


# ---- Message ----
def test_new_message_counts_tokens():
    msg = new_message("user", "one two three", Model("m", 100))
    assert msg.role == "user"
    assert msg.tokens == 3
    assert not msg.is_system_message
    assert msg.id
    assert msg.created_at.tzinfo is not None


def test_new_message_ids_are_unique():
    model = Model("m", 100)
    assert new_message("user", "a", model).id != new_message("user", "a", model).id


@pytest.mark.parametrize("role,content", [("tool", "hi"), ("", "hi"), ("user", ""), ("user", "  \n\t")])
def test_new_message_rejects_bad_input(role, content):
    with pytest.raises(InvalidContentError):
        new_message(role, content, Model("m", 100))


# ---- ChatConfiguration ----
def test_valid_configuration_passes():
    ChatConfiguration(model=Model("m", 100), max_tokens=10, temperature=2.0, top_p=0.0, stop=("END",)).validate()


@pytest.mark.parametrize(
    "overrides",
    [
        {"model": None},
        {"max_tokens": 0},
        {"max_tokens": 100},
        {"temperature": 2.5},
        {"top_p": 1.5},
        {"n": 0},
        {"presence_penalty": -3.0},
        {"frequency_penalty": 2.1},
    ],
)
def test_invalid_configuration_is_rejected(overrides):
    options = {"model": Model("m", 100), "max_tokens": 10}
    options.update(overrides)
    with pytest.raises(InvalidConfigurationError):
        ChatConfiguration(**options).validate()
