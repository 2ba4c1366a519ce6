from collections.abc import Callable

from tagmeister.util.ui.UIState import UIState

import customtkinter as ctk
from customtkinter.windows.widgets.scaling import CTkScalingBaseClass

PAD = 10


def label(master, row, column, text, pad=PAD, wraplength=0, sticky="nw"):
    component = ctk.CTkLabel(master, text=text, wraplength=wraplength)
    component.grid(row=row, column=column, padx=pad, pady=pad, sticky=sticky)
    return component


def entry(master, row, column, ui_state: UIState, var_name: str, command: Callable[[], None] = None,
          width: int = 140, sticky: str = "new"):
    var = ui_state.get_var(var_name)
    if command:
        trace_id = ui_state.add_var_trace(var_name, command)

    component = ctk.CTkEntry(master, textvariable=var, width=width)
    component.grid(row=row, column=column, padx=PAD, pady=PAD, sticky=sticky)

    def create_destroy(component):
        orig_destroy = component.destroy

        def destroy(self):
            if command is not None:
                ui_state.remove_var_trace(var_name, trace_id)

            orig_destroy()

        return destroy

    destroy = create_destroy(component)
    component.destroy = lambda: destroy(component)

    return component


def secret_entry(master, row, column, ui_state: UIState, var_name: str, command: Callable[[], None] = None,
                 width: int = 220):
    """An entry that masks its content, with a button to show or hide it."""
    frame = ctk.CTkFrame(master, fg_color="transparent")
    frame.grid(row=row, column=column, padx=0, pady=0, sticky="new")
    frame.grid_columnconfigure(0, weight=1)

    component = entry(frame, 0, 0, ui_state, var_name, command=command, width=width)
    component.configure(show="*")

    def toggle():
        if component.cget("show") == "*":
            component.configure(show="")
            button_component.configure(text="Hide")
        else:
            component.configure(show="*")
            button_component.configure(text="Show")

    button_component = ctk.CTkButton(frame, text="Show", width=50, command=toggle)
    button_component.grid(row=0, column=1, padx=(0, PAD), pady=PAD, sticky="new")

    return component


def button(master, row, column, text, command, **kwargs):
    # Pop grid-specific parameters from kwargs, using PAD as the default if not provided.
    padx = kwargs.pop('padx', PAD)
    pady = kwargs.pop('pady', PAD)

    component = ctk.CTkButton(master, text=text, command=command, **kwargs)
    component.grid(row=row, column=column, padx=padx, pady=pady, sticky="new")
    return component


def options(master, row, column, values, ui_state: UIState, var_name: str, command: Callable[[str], None] = None):
    component = ctk.CTkOptionMenu(master, values=values, variable=ui_state.get_var(var_name), command=command)
    component.grid(row=row, column=column, padx=PAD, pady=(PAD, PAD), sticky="new")

    # the dropdown menu is not unregistered from the scaling tracker on destroy
    def create_destroy(component):
        orig_destroy = component.destroy

        def destroy(self):
            orig_destroy()
            CTkScalingBaseClass.destroy(self)

        return destroy

    destroy = create_destroy(component._dropdown_menu)
    component._dropdown_menu.destroy = lambda: destroy(component._dropdown_menu)

    return component


def switch(master, row, column, ui_state: UIState, var_name: str, command: Callable[[], None] = None, text: str = ""):
    component = ctk.CTkSwitch(master, variable=ui_state.get_var(var_name), text=text, command=command)
    component.grid(row=row, column=column, padx=PAD, pady=(PAD, PAD), sticky="new")
    return component


def progress(master, row, column):
    frame = ctk.CTkFrame(master, fg_color="transparent")
    frame.grid(row=row, column=column, padx=0, pady=0, sticky="ew")
    frame.grid_columnconfigure(0, weight=1)

    progress_component = ctk.CTkProgressBar(frame)
    progress_component.grid(row=0, column=0, padx=PAD, pady=PAD, sticky="ew")
    progress_component.set(0)

    description_component = ctk.CTkLabel(frame, text="")
    description_component.grid(row=0, column=1, padx=PAD, pady=0, sticky="e")

    def set_progress(value, max_value):
        progress_component.set(value / max_value if max_value else 0)
        description_component.configure(text=f"{value}/{max_value}" if max_value else "")

    return set_progress
