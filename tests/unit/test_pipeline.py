"""
Unit tests for the step pipeline.
"""

from quoted.conn import Conn
from quoted.http import HTTPRequest, HTTPStatus
from quoted.middleware import FunctionStep, Pipeline, Step, step
from quoted.routes import Home


def make_conn() -> Conn:
    return Conn(request=HTTPRequest("GET", "/"), route=Home())


class Recorder(Step):
    """Step that records that it ran."""

    def __init__(self, log: list, label: str):
        self.log = log
        self.label = label

    def __call__(self, conn: Conn) -> Conn:
        self.log.append(self.label)
        return conn


class TestPipeline:
    """Tests for Pipeline.run."""

    def test_runs_steps_in_order(self):
        log = []
        pipeline = Pipeline().use(Recorder(log, "a"), Recorder(log, "b"), Recorder(log, "c"))

        conn = pipeline.run(make_conn())

        assert log == ["a", "b", "c"]
        assert not conn.is_sent

    def test_empty_pipeline_returns_conn_unchanged(self):
        conn = make_conn()
        assert Pipeline().run(conn) is conn
        assert not conn.is_sent

    def test_short_circuit_skips_remaining_steps(self):
        log = []

        @step
        def reject(conn):
            log.append("reject")
            return conn.respond(HTTPStatus.UNAUTHORIZED, "nope")

        pipeline = Pipeline().use(Recorder(log, "first"), reject, Recorder(log, "after"))
        conn = pipeline.run(make_conn())

        assert log == ["first", "reject"]
        assert conn.response.status == HTTPStatus.UNAUTHORIZED

    def test_later_step_cannot_overwrite_401(self):
        """A step that tries to respond after a 401 leaves the 401 in place."""
        @step
        def deny(conn):
            return conn.respond(HTTPStatus.UNAUTHORIZED, "Authorization header not provided")

        @step
        def overwrite(conn):
            conn.respond(HTTPStatus.OK, "all good")
            conn.set_header("X-Overwritten", "yes")
            return conn

        conn = make_conn()
        # call the overwriting step directly too, bypassing the short-circuit
        conn = overwrite(Pipeline().use(deny, overwrite).run(conn))

        assert conn.response.status == HTTPStatus.UNAUTHORIZED
        assert conn.response.text == "Authorization header not provided"
        assert "X-Overwritten" not in conn.response.headers

    def test_already_sent_conn_skips_every_step(self):
        log = []
        conn = make_conn().respond(HTTPStatus.OK, "done")

        Pipeline().use(Recorder(log, "a")).run(conn)

        assert log == []

    def test_headers_from_earlier_steps_survive(self):
        pipeline = Pipeline().use(
            FunctionStep(lambda conn: conn.set_header("X-Step", "1"), name="tag"),
            FunctionStep(lambda conn: conn.respond(HTTPStatus.OK, "hi"), name="answer"),
        )

        conn = pipeline.run(make_conn())

        assert conn.response.headers["X-Step"] == "1"
        assert conn.response.text == "hi"

    def test_len_and_iter(self):
        a, b = Recorder([], "a"), Recorder([], "b")
        pipeline = Pipeline().add(a).add(b)

        assert len(pipeline) == 2
        assert list(pipeline) == [a, b]


class TestFunctionStep:
    """Tests for function-based steps."""

    def test_name_defaults_to_function_name(self):
        @step
        def my_step(conn):
            return conn

        assert my_step.name == "my_step"

    def test_explicit_name(self):
        assert FunctionStep(lambda conn: conn, name="custom").name == "custom"

    def test_class_step_name(self):
        assert Recorder([], "x").name == "Recorder"
