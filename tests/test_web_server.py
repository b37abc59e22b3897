"""
Tests for the API launcher script.
"""

from unittest.mock import patch

from scripts import web_server


@patch("scripts.web_server.uvicorn.run")
def test_defaults(mock_run):
    assert web_server.main([]) == 0

    mock_run.assert_called_once()
    args, kwargs = mock_run.call_args
    assert args == ("brandrag.api.main:app",)
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 8000
    assert kwargs["reload"] is False


@patch("scripts.web_server.uvicorn.run")
def test_custom_host_and_port(mock_run):
    web_server.main(["--host", "0.0.0.0", "--port", "9001", "--reload"])

    kwargs = mock_run.call_args.kwargs
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9001
    assert kwargs["reload"] is True


@patch("scripts.web_server.uvicorn.run")
def test_invalid_port_rejected(mock_run):
    assert web_server.main(["--port", "70000"]) == 1

    mock_run.assert_not_called()
