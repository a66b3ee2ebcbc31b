import plistlib

from hypothesis import given, strategies as st

from servermon.config import GlobalSettings
from servermon.descriptor import JSON, XML_PLIST, escape_xml, render
from servermon.manifest import ServiceRecord

SETTINGS = GlobalSettings.model_validate(
    {
        "logDir": "/var/log/servermon",
        "plistDir": "/tmp/servermon/launchd",
        "launchAgentsDir": "/tmp/servermon/LaunchAgents",
        "nodePath": "/opt/node/bin/node",
    }
)

# Characters an XML 1.0 document can carry verbatim; plistlib folds "\r"
xml_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs", "Cc", "Cn")),
    max_size=40,
)

# Tokens that survive whitespace splitting unchanged
argv_token = st.text(
    alphabet=st.characters(blacklist_categories=("Cs", "Cc", "Cn", "Zs", "Zl", "Zp")),
    min_size=1,
    max_size=15,
)


@given(
    tokens=st.lists(argv_token, min_size=1, max_size=6),
    path=xml_text.filter(lambda text: not set(text) & set("~$")),
)
def test_program_arguments_survive_serialization(tokens: list[str], path: str) -> None:
    service = ServiceRecord(
        name="svc",
        identifier="com.test.svc",
        command=" ".join(tokens),
        path=path or None,
    )

    parsed = plistlib.loads(render(service, SETTINGS).content)

    assert parsed["ProgramArguments"] == tokens
    if path:
        assert parsed["WorkingDirectory"] == path


@given(
    env=st.dictionaries(
        st.from_regex(r"[A-Z_][A-Z0-9_]{0,10}", fullmatch=True), xml_text, max_size=5
    ),
    extra=st.dictionaries(
        st.from_regex(r"X[A-Za-z]{1,8}", fullmatch=True),
        st.one_of(st.booleans(), st.integers(-1000, 1000), xml_text),
        max_size=4,
    ),
)
def test_rendering_is_deterministic(env: dict[str, str], extra: dict[str, object]) -> None:
    service = ServiceRecord.model_validate(
        {
            "name": "svc",
            "identifier": "com.test.svc",
            "command": "serve --port 3000",
            "environmentVariables": env,
            "extraKeys": extra,
        }
    )

    first = render(service, SETTINGS)
    second = render(service, SETTINGS)

    assert first.content == second.content
    as_json = render(service, SETTINGS, format=JSON)
    assert XML_PLIST.parse(first.content) == JSON.parse(as_json.content)


@given(text=xml_text)
def test_escaped_text_has_no_bare_metacharacters(text: str) -> None:
    escaped = escape_xml(text)
    assert "<" not in escaped
    assert ">" not in escaped
    assert '"' not in escaped
    assert escaped.replace("&amp;", "").replace("&lt;", "").replace("&gt;", "").replace(
        "&quot;", ""
    ).replace("&apos;", "").count("&") == 0
