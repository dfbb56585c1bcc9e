import signal

from django.core.management.base import BaseCommand, CommandError

from forum.pipeline.runtime import PipelineRuntime
from forum.workers import WORKERS, WorkerRunner


class Command(BaseCommand):
    help = "Runs the pipeline queue consumers until SIGINT/SIGTERM"

    def add_arguments(self, parser):
        parser.add_argument(
            "--queue",
            action="append",
            dest="queues",
            choices=sorted(WORKERS),
            help="Queue to consume (repeatable; default: all queues)",
        )

    def handle(self, *args, **options):
        try:
            runner = WorkerRunner(PipelineRuntime.from_settings(), options["queues"])
        except ValueError as e:
            raise CommandError(str(e)) from e

        def shutdown(signum, frame):
            self.stdout.write(f"Received signal {signum}, finishing in-flight jobs...")
            runner.stop_event.set()

        signal.signal(signal.SIGINT, shutdown)
        signal.signal(signal.SIGTERM, shutdown)

        runner.start()
        self.stdout.write(
            self.style.SUCCESS(f"Consuming {', '.join(runner.queue_names)}")
        )
        try:
            runner.wait()
        finally:
            runner.stop()
        self.stdout.write(self.style.SUCCESS("Workers stopped"))
