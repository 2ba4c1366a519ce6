"""
`caption_ui.py` opens the caption browser.

It lists the images of a directory together with their captions, lets the user edit captions by
hand and runs auto-captioning for the selected images. Settings and the api key are loaded on
startup and saved when the window is closed.
"""
from util.import_util import script_imports

script_imports()

from tagmeister.ui.CaptionUI import CaptionUI
from tagmeister.util.args.CaptionUIArgs import CaptionUIArgs
from tagmeister.util.logging_util import configure_logging


def main():
    args = CaptionUIArgs.parse_args()
    configure_logging(args.log_level)

    ui = CaptionUI(None, args.dir, args.include_subdirectories, args.settings_path, args.secrets_path)
    ui.mainloop()


if __name__ == '__main__':
    main()
