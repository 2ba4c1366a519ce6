import argparse
from typing import Any

from tagmeister.util.args.BaseArgs import BaseArgs
from tagmeister.util.enum.CaptionModel import CaptionModel


class GenerateCaptionsArgs(BaseArgs):
    sample_dir: str
    include_subdirectories: bool
    model: CaptionModel | None
    caption_prefix: str | None
    caption_postfix: str | None
    api_key: str | None
    yes: bool

    def __init__(self, data: list[(str, Any, type, bool)]):
        super().__init__(data)

    @staticmethod
    def parse_args(argv: list[str] | None = None) -> 'GenerateCaptionsArgs':
        parser = argparse.ArgumentParser(description="Tagmeister Generate Captions Script.")

        # @formatter:off

        parser.add_argument("--sample-dir", type=str, required=True, dest="sample_dir", help="Directory where the images are located")
        parser.add_argument("--include-subdirectories", action="store_true", required=False, default=False, dest="include_subdirectories", help="Whether to include subdirectories when listing images")
        parser.add_argument("--model", type=CaptionModel, required=False, default=None, dest="model", help="The model to use when generating captions, defaults to the saved setting", choices=list(CaptionModel))
        parser.add_argument("--caption-prefix", type=str, required=False, default=None, dest="caption_prefix", help="Add this to the start of every generated caption, defaults to the saved setting")
        parser.add_argument("--caption-postfix", type=str, required=False, default=None, dest="caption_postfix", help="Add this to the end of every generated caption, defaults to the saved setting")
        parser.add_argument("--api-key", type=str, required=False, default=None, dest="api_key", help="The OpenAI api key, defaults to the secrets file or the OPENAI_API_KEY environment variable")
        parser.add_argument("--yes", "-y", action="store_true", required=False, default=False, dest="yes", help="Caption all images without asking for confirmation")

        # @formatter:on

        BaseArgs.add_common_arguments(parser)

        args = GenerateCaptionsArgs.default_values()
        args.from_dict(vars(parser.parse_args(argv)))
        return args

    @staticmethod
    def default_values() -> 'GenerateCaptionsArgs':
        data = []

        # name, default value, data type, nullable
        data.append(("sample_dir", "", str, False))
        data.append(("include_subdirectories", False, bool, False))
        data.append(("model", None, CaptionModel, True))
        data.append(("caption_prefix", None, str, True))
        data.append(("caption_postfix", None, str, True))
        data.append(("api_key", None, str, True))
        data.append(("yes", False, bool, False))
        data.extend(BaseArgs.common_values())

        return GenerateCaptionsArgs(data)
