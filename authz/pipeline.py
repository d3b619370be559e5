from typing import Any, Callable, Iterable, Iterator, List

from authz import authz_logging
from authz.errors import InvalidStage

logger = authz_logging.init_logging("pipeline")

Stage = Callable[[Any], Any]


class Pipeline:
    """An ordered chain of stages, each of which receives a request context and returns a (possibly updated) one.

    Stages are run in the order in which they were registered. As soon as a stage returns a halted context, the
    remaining stages are skipped and that context becomes the result of the pipeline:

        pipeline = Pipeline()
        pipeline.plug(authenticate).plug(AdminStage, resource=Resource.ADMIN_ROUTES)
        result = pipeline.run(RequestContext(method="GET", path="/admin"))

    Registering a stage class instantiates it straight away, so an invalid configuration is reported when the
    pipeline is assembled rather than when the first request arrives.
    """

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: List[Stage] = []

        for stage in stages:
            self.plug(stage)

    def plug(self, stage: Any, **opts: Any) -> "Pipeline":
        if isinstance(stage, type):
            stage = stage(**opts)
        elif opts:
            raise InvalidStage(f"Options can only be given when registering a stage class, not {stage!r}")

        if not callable(stage):
            raise InvalidStage(f"Pipeline stage {stage!r} is not callable")

        self._stages.append(stage)
        return self

    def run(self, context: Any) -> Any:
        for stage in self._stages:
            logger.debug("Invoking stage %r", stage)
            context = stage(context)

            if getattr(context, "halted", False):
                logger.info("Pipeline halted by stage %r with status %s", stage, getattr(context, "status", None))
                break

        return context

    def __call__(self, context: Any) -> Any:
        return self.run(context)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages.copy())

    def __len__(self) -> int:
        return len(self._stages)
