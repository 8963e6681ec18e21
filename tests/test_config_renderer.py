"""
Tests for web.config generation.
"""
from datetime import datetime, timezone
from xml.etree import ElementTree

import pytest
from pydantic import ValidationError

from adapters.config_renderer import render_web_config
from core.domain.models import HandlerConfig, ModuleKind

FIXED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_extension_registers_isapi_handler():
    xml = render_web_config(HandlerConfig(handler_name="Orders", binary_name="orders.dll"), generated_at=FIXED)

    root = ElementTree.fromstring(xml.encode("utf-8"))
    handler = root.find("./system.webServer/handlers/add")
    assert handler is not None
    assert handler.get("name") == "Orders"
    assert handler.get("modules") == "IsapiModule"
    assert handler.get("scriptProcessor").endswith(r"\bin\orders.dll")
    assert handler.get("verb") == "GET,POST,HEAD"
    assert root.find("./system.webServer/isapiFilters") is None


def test_filter_registers_isapi_filter():
    config = HandlerConfig(handler_name="AuthFilter", binary_name="auth.dll", kind=ModuleKind.FILTER)
    root = ElementTree.fromstring(render_web_config(config, generated_at=FIXED).encode("utf-8"))

    flt = root.find("./system.webServer/isapiFilters/filter")
    assert flt is not None
    assert flt.get("name") == "AuthFilter"
    assert flt.get("preCondition") == "bitness64"
    assert root.find("./system.webServer/handlers") is None


def test_environment_mapping_is_rendered_as_app_settings():
    root = ElementTree.fromstring(
        render_web_config(HandlerConfig(handler_name="h", binary_name="h.dll"), generated_at=FIXED).encode("utf-8")
    )

    settings = {e.get("key"): e.get("value") for e in root.findall("./appSettings/add")}
    assert settings["ISAPI_LOG_DIR"] == r"D:\home\LogFiles\isapi"
    assert "ISAPI_TEMP_DIR" in settings


def test_operator_names_are_escaped():
    config = HandlerConfig(
        handler_name='Evil" onload="x <b>&',
        binary_name="ok.dll",
        environment={"ISAPI_DATA_DIR": 'D:\\home\\"data"'},
    )
    xml = render_web_config(config, generated_at=FIXED)

    assert 'onload="x' not in xml
    root = ElementTree.fromstring(xml.encode("utf-8"))
    assert root.find("./system.webServer/handlers/add").get("name") == 'Evil" onload="x <b>&'
    assert root.find("./appSettings/add").get("value") == 'D:\\home\\"data"'


def test_binary_name_must_be_a_file_name():
    with pytest.raises(ValidationError):
        HandlerConfig(handler_name="h", binary_name="..\\windows\\evil.dll")
