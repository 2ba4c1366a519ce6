import logging
import sys

from util.import_util import script_imports

script_imports()

from tagmeister.module.captioning.BatchCaptionController import BatchCaptionController
from tagmeister.module.captioning.caption_errors import RunRejectedError
from tagmeister.module.captioning.captioning_util import get_samples
from tagmeister.module.captioning.OpenAIVisionClient import OpenAIVisionClient
from tagmeister.util.args.GenerateCaptionsArgs import GenerateCaptionsArgs
from tagmeister.util.config import settings_util
from tagmeister.util.logging_util import configure_logging

from tqdm import tqdm

logger = logging.getLogger(__name__)


def confirm(count: int) -> bool:
    answer = input(f"Generate captions for {count} images? Existing captions will be overwritten. [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def main() -> int:
    args = GenerateCaptionsArgs.parse_args()
    configure_logging(args.log_level)

    config = settings_util.load_caption_config(args.settings_path)
    secrets = settings_util.load_secrets(args.secrets_path)
    if args.model is not None:
        config.model = args.model
    if args.caption_prefix is not None:
        config.prepend_text = args.caption_prefix
    if args.caption_postfix is not None:
        config.append_text = args.caption_postfix
    if args.api_key is not None:
        secrets.openai_api_key = args.api_key

    samples = get_samples(args.sample_dir, args.include_subdirectories)
    if not samples:
        logger.error(f"No images found in {args.sample_dir}")
        return 1

    if BatchCaptionController.needs_confirmation(samples) and not args.yes and not confirm(len(samples)):
        return 0

    with tqdm(total=len(samples), desc="Captioning", unit="image") as progress_bar:
        def update_progress(value: int, max_value: int):
            progress_bar.n = value
            progress_bar.refresh()

        controller = BatchCaptionController(
            client=OpenAIVisionClient.from_config(config),
            config=config,
            secrets=secrets,
            progress_callback=update_progress,
            error_callback=lambda filename: tqdm.write("Error while processing image " + filename),
        )

        try:
            controller.start_run(samples)
        except RunRejectedError as e:
            logger.error(str(e))
            return 1

        try:
            while not controller.join(0.5):
                pass
        except KeyboardInterrupt:
            controller.cancel()
            controller.join()

    state = controller.state
    failures = state.failures
    if state.cancelled:
        print(f"Cancelled after {state.current_index} of {state.total} images")
    if failures:
        print(f"{len(failures)} of {state.current_index} images failed:")
        for result in failures:
            print(f"  {result.sample.image_filename}: {result.caption}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
