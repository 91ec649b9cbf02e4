import json

import pytest
from pydantic import ValidationError

from card_reader.models import CardV3Wrapper, CharacterCard, LorebookEntry


def _full_card_payload() -> dict:
    return {
        "name": "Alice",
        "description": "A curious girl.",
        "personality": "curious",
        "scenario": "Wonderland",
        "first_mes": "Hello!",
        "mes_example": "<START>\n{{char}}: Hi",
        "creator": "lewis",
        "character_version": "1.2",
        "creator_notes": "Have fun.",
        "system_prompt": "Stay in character.",
        "post_history_instructions": "Be brief.",
        "alternate_greetings": ["Hi there", "Good day"],
        "tags": ["fantasy", "classic"],
        "avatar": "none",
        "character_book": {
            "name": "Wonderland lore",
            "scan_depth": 3,
            "entries": [
                {
                    "id": 1,
                    "keys": ["rabbit"],
                    "secondary_keys": ["watch"],
                    "comment": "White Rabbit",
                    "content": "Always late.",
                    "constant": False,
                    "selective": True,
                    "enabled": True,
                    "use_regex": False,
                    "insertion_order": 10,
                    "position": "before_char",
                    "extensions": {"depth": 4, "probability": 100},
                    "display_index": 0,
                }
            ],
        },
        "extensions": {
            "fav": True,
            "world": "wonderland",
            "talkativeness": "0.5",
            "depth_prompt": {"depth": 2, "prompt": "Remember the tea.", "role": "system"},
            "regex_scripts": [
                {
                    "id": "a1",
                    "scriptName": "Trim",
                    "findRegex": "/\\s+$/g",
                    "replaceString": "",
                    "runOnEdit": True,
                    "disabled": False,
                    "markdownOnly": True,
                    "promptOnly": False,
                    "minDepth": None,
                    "maxDepth": 5,
                    "placement": [2],
                }
            ],
            "chub": {"id": 42},
        },
    }


def test_card_maps_json_keys_to_attributes():
    card = CharacterCard.model_validate(_full_card_payload())
    assert card.first_message == "Hello!"
    assert card.message_example.startswith("<START>")
    assert card.extensions.favorite is True
    assert card.extensions.talkativeness == "0.5"
    assert card.extensions.depth_prompt.depth == 2
    script = card.extensions.regex_scripts[0]
    assert script.script_name == "Trim"
    assert script.find_regex == "/\\s+$/g"
    assert script.run_on_edit is True
    assert script.markdown_only is True
    assert script.min_depth is None
    assert script.max_depth == 5
    entry = card.character_book.entries[0]
    assert entry.secondary_keys == ["watch"]
    assert entry.extensions == {"depth": 4, "probability": 100}


def test_card_preserves_unknown_fields_at_every_level():
    payload = _full_card_payload()
    card = CharacterCard.model_validate(payload)
    dumped = json.loads(card.to_json())
    assert dumped["avatar"] == "none"
    assert dumped["extensions"]["chub"] == {"id": 42}
    assert dumped["extensions"]["regex_scripts"][0]["placement"] == [2]
    assert dumped["character_book"]["entries"][0]["display_index"] == 0
    assert dumped == payload


def test_card_json_round_trip():
    card = CharacterCard.model_validate(_full_card_payload())
    assert CharacterCard.from_json(card.to_json()) == card


def test_minimal_card_dump_only_contains_input_keys():
    card = CharacterCard.model_validate({"name": "Bob"})
    assert card.to_payload() == {"name": "Bob"}
    assert card.description == ""
    assert card.tags == []
    assert card.character_book is None
    assert card.extensions is None


def test_python_attribute_names_are_not_json_keys():
    card = CharacterCard.model_validate({"name": "Bob", "first_message": "Yo"})
    assert card.first_message == ""
    assert card.to_payload() == {"name": "Bob", "first_message": "Yo"}
    assert CharacterCard.model_validate({"first_mes": "Yo"}).first_message == "Yo"


def test_nulls_become_defaults():
    card = CharacterCard.model_validate(
        {
            "name": None,
            "creator": None,
            "first_mes": None,
            "tags": None,
            "character_book": {"entries": [{"keys": None, "content": "x", "enabled": None}]},
            "extensions": None,
        }
    )
    assert card.name == ""
    assert card.creator == ""
    assert card.first_message == ""
    assert card.tags == []
    assert card.extensions is None
    entry = card.character_book.entries[0]
    assert entry.keys == []
    assert entry.enabled is True


def test_entry_position_keeps_raw_value():
    assert LorebookEntry.model_validate({"position": 1}).position == 1
    assert LorebookEntry.model_validate({"position": "after_char"}).position == "after_char"


def test_card_rejects_wrong_types():
    with pytest.raises(ValidationError):
        CharacterCard.model_validate({"tags": "fantasy"})
    with pytest.raises(ValidationError):
        CharacterCard.model_validate({"character_book": {"entries": [{"insertion_order": "soon"}]}})


def test_v3_wrapper_requires_envelope_fields():
    with pytest.raises(ValidationError):
        CardV3Wrapper.model_validate({"spec": "chara_card_v3", "data": {}})
    wrapper = CardV3Wrapper.model_validate(
        {"spec": "chara_card_v3", "spec_version": "3.0", "data": {"name": "C"}, "meta": 1}
    )
    assert wrapper.data.name == "C"
    assert json.loads(wrapper.to_json()) == {
        "spec": "chara_card_v3",
        "spec_version": "3.0",
        "data": {"name": "C"},
        "meta": 1,
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"name": 5},
        {"tags": [1, 2]},
        {"alternate_greetings": ["ok", None]},
        {"character_book": {"entries": [{"insertion_order": "5"}]}},
        {"character_book": {"entries": [{"enabled": "yes"}]}},
        {"character_book": {"entries": [{"insertion_order": 5.0}]}},
        {"character_book": {"entries": [{"constant": 1}]}},
        {"extensions": {"fav": "true"}},
        {"extensions": {"depth_prompt": {"depth": "4"}}},
        {"extensions": {"regex_scripts": [{"disabled": 0}]}},
    ],
)
def test_card_does_not_coerce_mismatched_types(payload):
    with pytest.raises(ValidationError):
        CharacterCard.model_validate(payload)


def test_entry_and_script_ids_accept_text_or_numbers():
    book = CharacterCard.model_validate(
        {
            "character_book": {"entries": [{"id": 3}, {"id": "entry-a"}]},
            "extensions": {"regex_scripts": [{"id": "5e1c"}, {"id": 7}]},
        }
    )
    assert [entry.id for entry in book.character_book.entries] == [3, "entry-a"]
    assert [script.id for script in book.extensions.regex_scripts] == ["5e1c", 7]


@pytest.mark.parametrize("value", [1, 0.5, "0.5"])
def test_talkativeness_keeps_raw_value(value):
    card = CharacterCard.model_validate({"extensions": {"talkativeness": value}})
    dumped = card.to_payload()["extensions"]["talkativeness"]
    assert dumped == value
    assert type(dumped) is type(value)
