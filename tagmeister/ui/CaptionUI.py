import contextlib
import logging
from tkinter import TclError, filedialog, messagebox

from tagmeister.module.captioning.BatchCaptionController import (
    BatchCaptionController,
    CaptionJobState,
    CaptionResult,
)
from tagmeister.module.captioning.caption_errors import RunRejectedError
from tagmeister.module.captioning.CaptionSample import CaptionSample
from tagmeister.module.captioning.OpenAIVisionClient import OpenAIVisionClient
from tagmeister.ui.CaptionBrowser import CaptionBrowser
from tagmeister.util.config import settings_util
from tagmeister.util.enum.CaptionModel import CaptionModel
from tagmeister.util.ui import components
from tagmeister.util.ui.ui_utils import DebounceTimer, open_in_file_browser
from tagmeister.util.ui.UIState import UIState

import customtkinter as ctk
from customtkinter import ThemeManager
from PIL import Image

logger = logging.getLogger(__name__)

CAPTION_EDIT_DELAY_MS = 800


class CaptionUI(ctk.CTkToplevel):
    def __init__(
            self,
            parent,
            initial_dir: str | None,
            initial_include_subdirectories: bool,
            settings_path: str = settings_util.DEFAULT_SETTINGS_PATH,
            secrets_path: str = settings_util.DEFAULT_SECRETS_PATH,
            *args,
            **kwargs,
    ) -> None:
        super().__init__(parent, *args, **kwargs)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self.settings_path = settings_path
        self.secrets_path = secrets_path
        self.caption_config = settings_util.load_caption_config(settings_path)
        self.secrets = settings_util.load_secrets(secrets_path)
        if initial_include_subdirectories:
            self.caption_config.include_subdirectories = True

        self.config_ui_state = UIState(self, self.caption_config)
        self.secrets_ui_state = UIState(self, self.secrets)

        self.browser = CaptionBrowser(self.caption_config)
        self.controller = BatchCaptionController(
            client=OpenAIVisionClient.from_config(self.caption_config),
            config=self.caption_config,
            secrets=self.secrets,
            item_callback=lambda index, sample: self._schedule(lambda: self._on_run_item(sample)),
            progress_callback=lambda value, max_value: self._schedule(lambda: self.set_progress(value, max_value)),
            result_callback=lambda result: self._schedule(lambda: self._on_run_result(result)),
            error_callback=lambda filename: logger.warning(f"Could not caption {filename}"),
            finished_callback=lambda state: self._schedule(lambda: self._on_run_finished(state)),
        )
        self.caption_edit_timer = DebounceTimer(self, CAPTION_EDIT_DELAY_MS, self._apply_caption_edit)

        self.image_size = 700
        self.file_list = None
        self.rows: dict[CaptionSample, tuple[ctk.CTkCheckBox, ctk.CTkLabel]] = {}
        self.selection_controls = []
        self.image = None
        self.image_label = None
        self.position_label = None
        self.caption_component = None
        self.start_button = None
        self.cancel_button = None
        self.set_progress = None

        self.title("Tagmeister")
        self.geometry("1280x980")

        self.grid_rowconfigure(0, weight=0)
        self.grid_rowconfigure(1, weight=1)
        self.grid_rowconfigure(2, weight=0)
        self.grid_columnconfigure(0, weight=1)

        self.top_bar(self)

        self.bottom_frame = ctk.CTkFrame(self)
        self.bottom_frame.grid(row=1, column=0, sticky="nsew")
        self.bottom_frame.grid_rowconfigure(0, weight=1)
        self.bottom_frame.grid_columnconfigure(0, weight=0)
        self.bottom_frame.grid_columnconfigure(1, weight=1)

        self.file_list_column(self.bottom_frame)
        self.content_column(self.bottom_frame)
        self.auto_caption_frame(self)

        self.secrets_ui_state.add_var_trace("openai_api_key", self.update_start_button)

        self.load_directory(initial_dir or self.caption_config.last_directory)

        self.wait_visibility()
        self.focus_set()

    def top_bar(self, master):
        top_frame = ctk.CTkFrame(master)
        top_frame.grid(row=0, column=0, sticky="nsew")

        self.selection_controls.append(components.button(top_frame, 0, 0, "Open", self.open_directory))
        components.button(top_frame, 0, 1, "Open in File Browser", self.open_in_file_browser)
        self.selection_controls.append(components.switch(
            top_frame, 0, 2, self.config_ui_state, "include_subdirectories",
            command=self.reload_directory, text="include subdirectories",
        ))
        self.selection_controls.append(components.button(top_frame, 0, 3, "Select All", self.select_all))
        self.selection_controls.append(components.button(top_frame, 0, 4, "Select None", self.select_none))

        top_frame.grid_columnconfigure(5, weight=1)

    def file_list_column(self, master):
        if self.file_list is not None:
            for checkbox, _ in self.rows.values():
                if checkbox in self.selection_controls:
                    self.selection_controls.remove(checkbox)
            self.rows = {}
            self.file_list.destroy()

        self.file_list = ctk.CTkScrollableFrame(master, width=360)
        self.file_list.grid(row=0, column=0, sticky="nsew")
        self.file_list.grid_columnconfigure(0, weight=1)

        for i, sample in enumerate(self.browser.samples):
            def __create_switch_image(sample):
                def __switch_image(event):
                    if not self.controller.is_running:
                        self._flush_caption_edit()
                        self.switch_image(sample)

                return __switch_image

            def __create_toggle_selection(sample):
                def __toggle_selection():
                    self.browser.toggle_selection(sample)
                    self.update_position()
                    self.update_start_button()

                return __toggle_selection

            checkbox = ctk.CTkCheckBox(self.file_list, text=sample.filename, command=__create_toggle_selection(sample))
            checkbox.grid(row=i * 2, column=0, padx=5, pady=(5, 0), sticky="nsw")
            checkbox.bind("<Button-3>", __create_switch_image(sample))

            preview = ctk.CTkLabel(self.file_list, text=CaptionBrowser.caption_preview(sample), text_color="gray60")
            preview.grid(row=i * 2 + 1, column=0, padx=(30, 5), pady=(0, 5), sticky="nsw")
            preview.bind("<Button-1>", __create_switch_image(sample))

            self.rows[sample] = (checkbox, preview)
            self.selection_controls.append(checkbox)

    def content_column(self, master):
        right_frame = ctk.CTkFrame(master, fg_color="transparent")
        right_frame.grid(row=0, column=1, sticky="nsew")
        right_frame.grid_columnconfigure(1, weight=1)
        right_frame.grid_rowconfigure(0, weight=1)

        self.image = ctk.CTkImage(
            light_image=Image.new("RGB", (512, 512), (0, 0, 0)),
            size=(self.image_size, self.image_size)
        )
        self.image_label = ctk.CTkLabel(
            master=right_frame, text="", image=self.image, height=self.image_size, width=self.image_size
        )
        self.image_label.grid(row=0, column=0, columnspan=3, sticky="nsew")

        self.selection_controls.append(components.button(right_frame, 1, 0, "Previous", self.previous_image))
        self.position_label = components.label(right_frame, 1, 1, "0 / 0", sticky="n")
        self.selection_controls.append(components.button(right_frame, 1, 2, "Next", self.next_image))

        self.caption_component = ctk.CTkTextbox(right_frame, height=120, wrap="word")
        self.caption_component.grid(row=2, column=0, columnspan=3, padx=components.PAD, pady=5, sticky="nsew")
        self.caption_component.bind("<KeyRelease>", self._on_caption_key)
        self.caption_component.bind("<Control-Down>", self.next_image)
        self.caption_component.bind("<Control-Up>", self.previous_image)
        self.caption_component.bind("<FocusOut>", lambda event: self._flush_caption_edit())

    def auto_caption_frame(self, master):
        frame = ctk.CTkFrame(master)
        frame.grid(row=2, column=0, sticky="nsew")
        frame.grid_columnconfigure(1, weight=1)
        frame.grid_columnconfigure(3, weight=1)

        components.label(frame, 0, 0, "API Key")
        components.secret_entry(frame, 0, 1, self.secrets_ui_state, "openai_api_key")

        components.label(frame, 0, 2, "Model")
        components.options(frame, 0, 3, [str(x) for x in list(CaptionModel)], self.config_ui_state, "model")

        components.label(frame, 1, 0, "Prepend")
        components.entry(frame, 1, 1, self.config_ui_state, "prepend_text")

        components.label(frame, 1, 2, "Append")
        components.entry(frame, 1, 3, self.config_ui_state, "append_text")

        self.set_progress = components.progress(frame, 2, 0)
        self.set_progress(0, 0)
        self.start_button = components.button(frame, 2, 1, "Start Auto-Captioning", self.start_captioning)
        self.cancel_button = components.button(frame, 2, 3, "Cancel", self.cancel_captioning, state="disabled")

    def load_directory(self, directory: str | None):
        self._flush_caption_edit()
        self.browser.load_directory(directory, self.caption_config.include_subdirectories)
        if directory:
            self.caption_config.last_directory = directory

        self.file_list_column(self.bottom_frame)
        self.switch_image(self.browser.current_sample)
        self.update_start_button()

    def reload_directory(self):
        self.load_directory(self.browser.dir)

    def open_directory(self):
        new_dir = filedialog.askdirectory(parent=self)

        if new_dir:
            self.load_directory(new_dir)

    def open_in_file_browser(self):
        sample = self.browser.current_sample
        if sample is not None:
            open_in_file_browser(sample.image_filename)
        elif self.browser.dir:
            open_in_file_browser(self.browser.dir)

    def select_all(self):
        self.browser.select_all()
        self.update_selection()

    def select_none(self):
        self.browser.select_none()
        self.update_selection()

    def update_selection(self):
        for sample, (checkbox, _) in self.rows.items():
            if self.browser.is_selected(sample):
                checkbox.select()
            else:
                checkbox.deselect()
        self.update_position()
        self.update_start_button()

    def update_position(self):
        self.position_label.configure(text=self.browser.position_text())

    def update_start_button(self):
        enabled = self.browser.can_start_captioning(self.controller.is_running, self.secrets.api_key())
        self.start_button.configure(state="normal" if enabled else "disabled")

    def previous_image(self, event=None):
        if not self.controller.is_running:
            self._flush_caption_edit()
            self.switch_image(self.browser.previous_sample())
        return "break"

    def next_image(self, event=None):
        if not self.controller.is_running:
            self._flush_caption_edit()
            self.switch_image(self.browser.next_sample())
        return "break"

    def switch_image(self, sample: CaptionSample | None):
        previous = self.browser.current_sample
        if previous in self.rows:
            self.rows[previous][0].configure(text_color=ThemeManager.theme["CTkCheckBox"]["text_color"])

        self.browser.show(sample)
        self.update_position()

        if sample is None:
            self.image.configure(light_image=Image.new("RGB", (512, 512), (0, 0, 0)))
            self._set_caption_text("")
            return

        if sample in self.rows:
            self.rows[sample][0].configure(text_color="#FF0000")

        pil_image = self.load_image(sample)
        self.image.configure(light_image=pil_image, size=pil_image.size)
        self._set_caption_text(self.browser.current_caption())

    def load_image(self, sample: CaptionSample) -> Image.Image:
        try:
            with Image.open(sample.image_filename) as image:
                pil_image = image.convert("RGB")
        except OSError as e:
            logger.warning(f"Could not open image {sample.image_filename}: {e}")
            return Image.new("RGB", (512, 512), (0, 0, 0))

        scale = self.image_size / max(pil_image.height, pil_image.width)
        width = max(1, int(pil_image.width * scale))
        height = max(1, int(pil_image.height * scale))
        return pil_image.resize((width, height), Image.Resampling.LANCZOS)

    def _get_caption_text(self) -> str:
        return self.caption_component.get("1.0", "end-1c")

    def _set_caption_text(self, text: str):
        self.caption_component.delete("1.0", "end")
        self.caption_component.insert("1.0", text)

    def _on_caption_key(self, event):
        if self.controller.is_running:
            return
        if event.keysym in ("Up", "Down", "Left", "Right", "Control_L", "Control_R", "Shift_L", "Shift_R"):
            return
        self.caption_edit_timer.call()

    def _flush_caption_edit(self):
        if self.caption_edit_timer.pending:
            self.caption_edit_timer.cancel()
            self._apply_caption_edit()

    def _apply_caption_edit(self):
        sample = self.browser.current_sample
        caption = self.browser.apply_caption_edit(self._get_caption_text())
        if caption is None:
            return

        if caption != self._get_caption_text():
            self._set_caption_text(caption)
        if sample in self.rows:
            self.rows[sample][1].configure(text=CaptionBrowser.caption_preview(sample))

    def start_captioning(self):
        targets = self.browser.run_targets()

        if BatchCaptionController.needs_confirmation(targets) and not messagebox.askyesno(
                "Start Auto-Captioning",
                f"Generate captions for {len(targets)} images? Existing captions will be overwritten.",
                parent=self,
        ):
            return

        self._flush_caption_edit()
        self.controller.client = OpenAIVisionClient.from_config(self.caption_config)

        try:
            self.controller.start_run(targets)
        except RunRejectedError as e:
            messagebox.showwarning("Auto-Captioning", str(e), parent=self)
            return

        self._set_running(True)

    def cancel_captioning(self):
        if self.controller.cancel():
            self.cancel_button.configure(state="disabled")

    def _schedule(self, callback):
        # run callbacks from the captioning thread on the tk thread, the window may already be closed
        with contextlib.suppress(TclError, RuntimeError):
            self.after(0, callback)

    def _set_running(self, running: bool):
        state = "disabled" if running else "normal"
        for control in self.selection_controls:
            control.configure(state=state)
        self.caption_component.configure(state=state)
        self.cancel_button.configure(state="normal" if running else "disabled")
        self.update_start_button()

    def _on_run_item(self, sample: CaptionSample):
        # the editor is read only while captioning, it has to be writable to show the next caption
        self.caption_component.configure(state="normal")
        self.switch_image(sample)
        self.caption_component.configure(state="disabled")

    def _on_run_result(self, result: CaptionResult):
        if result.sample in self.rows:
            self.rows[result.sample][1].configure(text=CaptionBrowser.caption_preview(result.sample))

        if result.sample == self.browser.current_sample:
            self.caption_component.configure(state="normal")
            self._set_caption_text(result.caption)
            self.caption_component.configure(state="disabled")

    def _on_run_finished(self, state: CaptionJobState):
        self._set_running(False)

        if state.cancelled:
            messagebox.showinfo("Auto-Captioning", f"Cancelled after {state.current_index} of {state.total} images.", parent=self)
        elif state.failures:
            failed = "\n".join(result.sample.filename for result in state.failures)
            messagebox.showwarning("Auto-Captioning", f"{len(state.failures)} of {state.total} images failed:\n{failed}", parent=self)

    def save_settings(self):
        settings_util.save_caption_config(self.caption_config, self.settings_path)
        settings_util.save_secrets(self.secrets, self.secrets_path)

    def _on_close(self):
        self._flush_caption_edit()
        self.controller.cancel()
        try:
            self.save_settings()
        except OSError as e:
            logger.error(f"Could not save settings: {e}")
        self.destroy()
