import io
import unittest

import requests
from rich.console import Console

from askllm.config import Configuration
from askllm.llm.client import ChatClient
from askllm.llm.transport import Transport
from askllm.llm.types import ChatRequestParams
from askllm.session import EXIT_FAILURE, EXIT_SUCCESS, STREAM_USAGE_NOTICE, RunMode, Session, run
from tests.fakes import FakeHTTP, FakeResponse, completion_body, stream_event

CONFIG = Configuration(api_key="k", base_url="https://example/api", model_name="m", system_prompt="sys")


class SessionTests(unittest.TestCase):
    def setUp(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.console = Console(file=self.err, width=200, soft_wrap=True)

    def make(self, mode, response=None, exc=None, config=CONFIG):
        self.http = FakeHTTP(response, exc=exc)
        client = ChatClient(config, Transport(http=self.http))
        return Session(config, mode, client=client, out=self.out, console=self.console)

    def test_dry_run_prints_payload_without_dispatch(self):
        session = self.make(RunMode(dry_run=True))
        status = session.run(ChatRequestParams(user_query="hi"))
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertEqual(
            self.out.getvalue(),
            '{"model":"m","messages":[{"role":"system","content":"sys"},{"role":"user","content":"hi"}],"stream":false}\n',
        )
        self.assertEqual(self.http.calls, [])
        self.assertEqual(session.events.stages(), ["BUILDING_REQUEST", "COMPLETED"])

    def test_dry_run_with_stream_mode_marks_stream_true(self):
        self.make(RunMode(dry_run=True, stream=True)).run(ChatRequestParams(user_query="hi"))
        self.assertIn('"stream":true', self.out.getvalue())

    def test_echo_comes_first(self):
        self.make(RunMode(dry_run=True, echo=True)).run(ChatRequestParams(user_query="hi"))
        self.assertTrue(self.out.getvalue().startswith("\nInput: hi\n{"))

    def test_buffered_answer_with_usage(self):
        usage = {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        session = self.make(RunMode(show_usage=True), FakeResponse(chunks=[completion_body("Hello!", usage)]))
        status = session.run(ChatRequestParams(user_query="hi"))
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertEqual(
            self.out.getvalue(),
            "\nAnswer: Hello!\n\nToken Usage:\n  Prompt: 10\n  Completion: 5\n  Total: 15\n",
        )
        self.assertIs(self.http.sent_payload["stream"], False)
        self.assertEqual(session.result.total_token_count, 15)
        self.assertEqual(session.events.stages(), ["BUILDING_REQUEST", "DISPATCHING", "COMPLETED"])

    def test_buffered_answer_without_usage_flag(self):
        self.make(RunMode(), FakeResponse(chunks=[completion_body("Hi")])).run(ChatRequestParams(user_query="q"))
        self.assertEqual(self.out.getvalue(), "\nAnswer: Hi\n")

    def test_streamed_answer(self):
        body = stream_event("Hel") + stream_event("lo") + b"data: [DONE]\n"
        resp = FakeResponse(chunks=[body[:20], body[20:45], body[45:]])
        status = self.make(RunMode(stream=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertEqual(self.out.getvalue(), "\nAnswer: Hello\n")
        self.assertIs(self.http.sent_payload["stream"], True)
        self.assertEqual(self.err.getvalue(), "")

    def test_streamed_usage_is_a_notice_not_an_error(self):
        resp = FakeResponse(chunks=[stream_event("x")])
        status = self.make(RunMode(stream=True, show_usage=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertIn(STREAM_USAGE_NOTICE, self.err.getvalue())
        self.assertNotIn("Token Usage:", self.out.getvalue())

    def test_stream_overflow_fails(self):
        resp = FakeResponse(chunks=[b"y" * 5000])
        session = self.make(RunMode(stream=True), resp)
        self.assertEqual(session.run(ChatRequestParams(user_query="q")), EXIT_FAILURE)
        self.assertIn("overflow", self.err.getvalue())
        self.assertEqual(session.events.current, "FAILED")

    def test_remote_error_envelope(self):
        resp = FakeResponse(chunks=[b'{"error":{"message":"invalid_api_key"}}'])
        status = self.make(RunMode(), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("invalid_api_key", self.err.getvalue())
        self.assertEqual(self.out.getvalue(), "")

    def test_http_error_status(self):
        resp = FakeResponse(status_code=402, text='{"error":{"message":"Insufficient Balance"}}')
        status = self.make(RunMode(stream=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("HTTP error 402: Insufficient Balance", self.err.getvalue())
        self.assertEqual(self.out.getvalue(), "")

    def test_stream_transport_failure_writes_no_answer(self):
        session = self.make(RunMode(stream=True), exc=requests.ConnectionError("refused"))
        self.assertEqual(session.run(ChatRequestParams(user_query="q")), EXIT_FAILURE)
        self.assertEqual(self.out.getvalue(), "")

    def test_stream_error_envelope_with_status_200(self):
        resp = FakeResponse(chunks=[b'{"error":{"message":"bad key"}}'])
        status = self.make(RunMode(stream=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("bad key", self.err.getvalue())
        self.assertEqual(self.out.getvalue(), "")

    def test_stream_failure_after_output_ends_the_line(self):
        resp = FakeResponse(chunks=[stream_event("Hi"), b"z" * 5000])
        status = self.make(RunMode(stream=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_FAILURE)
        self.assertEqual(self.out.getvalue(), "\nAnswer: Hi\n")

    def test_stream_without_deltas_prints_empty_answer(self):
        resp = FakeResponse(chunks=[b"data: [DONE]\n"])
        status = self.make(RunMode(stream=True), resp).run(ChatRequestParams(user_query="q"))
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertEqual(self.out.getvalue(), "\nAnswer: \n")

    def test_missing_api_key_makes_no_request(self):
        config = Configuration(base_url="https://example/api")
        session = self.make(RunMode(), config=config)
        self.assertEqual(session.run(ChatRequestParams(user_query="q")), EXIT_FAILURE)
        self.assertEqual(self.http.calls, [])
        self.assertIn("API_KEY", self.err.getvalue())
        self.assertEqual(session.events.stages(), ["BUILDING_REQUEST", "FAILED"])

    def test_error_message_with_brackets_is_not_markup(self):
        resp = FakeResponse(chunks=[b'{"error":{"message":"[bold]model[/bold] not found"}}'])
        self.make(RunMode(), resp).run(ChatRequestParams(user_query="q"))
        self.assertIn("[bold]model[/bold] not found", self.err.getvalue())

    def test_run_function(self):
        status = run(CONFIG, ChatRequestParams(user_query="hi"), RunMode(dry_run=True), out=self.out, console=self.console)
        self.assertEqual(status, EXIT_SUCCESS)
        self.assertTrue(self.out.getvalue().startswith('{"model":"m"'))


if __name__ == "__main__":
    unittest.main()
