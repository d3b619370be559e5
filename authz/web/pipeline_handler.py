import re
import time
from typing import Any, Optional

from tornado.httputil import HTTPServerRequest
from tornado.web import RequestHandler

from authz import authz_logging
from authz.context import CURRENT_ACTOR_KEY, RequestContext
from authz.pipeline import Pipeline

logger = authz_logging.init_logging("web")


def context_from_request(request: HTTPServerRequest, current_user: Any = None) -> RequestContext:
    """Build the pipeline's view of a Tornado request, with ``current_user`` placed in the actor slot."""
    assigns = {CURRENT_ACTOR_KEY: current_user} if current_user is not None else {}

    return RequestContext(
        method=request.method or "GET",
        path=request.path,
        # HTTPHeaders joins the values of repeated headers with commas
        headers=request.headers,
        assigns=assigns,
    )


class PipelineHandler(RequestHandler):
    """PipelineHandler is a Tornado RequestHandler which runs every request through a pipeline of stages before
    the handler's own verb methods (``get``, ``post``, etc.) are called.

    The current actor is taken from Tornado's ``current_user`` property, so subclasses authenticate requests the
    usual Tornado way, by overriding ``get_current_user`` (or ``prepare`` and assigning ``self.current_user`` before
    calling ``super().prepare()``). If a stage halts the pipeline, the halted context is written out as the response
    and the verb method is never called. Otherwise, the status and response headers set by the stages are applied to
    the response, and the context produced by the pipeline is available to the verb method as ``self.context``:

        class AdminHandler(PipelineHandler):
            def get_current_user(self):
                return sessions.lookup(self.get_cookie("session"))

            def get(self):
                self.write(render_dashboard(self.context.assigns[CURRENT_ACTOR_KEY]))

        app = tornado.web.Application([(r"/admin", AdminHandler, {"pipeline": admin_pipeline})])

    Exceptions raised by stages are not caught here; Tornado logs them and responds with a 500 error.
    """

    # pylint: disable=abstract-method

    def initialize(self, pipeline: Pipeline) -> None:
        # pylint: disable=attribute-defined-outside-init
        self._pipeline: Pipeline = pipeline
        self._context: Optional[RequestContext] = None
        self._received_at: int = time.time_ns()

    def _process_request_id(self) -> None:
        # Make incoming request ID available to logger
        authz_logging.request_id_var.set(self.request_id)
        # Set response header to include request ID
        self.set_header("X-Request-ID", self.request_id)

    def _apply_context(self, context: RequestContext) -> None:
        if context.status is not None:
            self.set_status(context.status)

        for name, value in context.response_headers.items():
            if name.lower() not in ("content-length", "transfer-encoding"):
                self.set_header(name, value)

    def prepare(self) -> None:
        self._process_request_id()
        logger.info("%s %s", self.request.method, self.request.path)

        context = self.pipeline.run(context_from_request(self.request, self.current_user))

        self._apply_context(context)

        if context.halted:
            self.finish(context.body)
            return

        # pylint: disable=attribute-defined-outside-init
        self._context = context

    def on_finish(self) -> None:
        message = f"Sent {self.get_status()} in {self.elapsed_time}"

        if self.get_status() < 400:
            logger.info(message)
        elif self.get_status() < 500:
            logger.warning(message)
        else:
            logger.error(message)

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def context(self) -> Optional[RequestContext]:
        return self._context

    @property
    def elapsed_time(self) -> str:
        # pylint: disable=no-else-return

        ns_elapsed = time.time_ns() - self._received_at

        if ns_elapsed < 1000:
            return f"{ns_elapsed}ns"
        elif ns_elapsed < 1000000:
            return f"{round(ns_elapsed/1000)}μs"
        elif ns_elapsed < 1000000000:
            return f"{round(ns_elapsed/1000000)}ms"
        else:
            return f"{round(ns_elapsed/1000000000)}s"

    @property
    def request_id(self) -> str:
        request_id = self.request.headers.get("X-Request-ID") or ""
        request_id = re.sub(r"\W+", "", request_id)
        request_id = request_id[:36]
        return request_id
