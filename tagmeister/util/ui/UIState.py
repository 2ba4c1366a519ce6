import contextlib
import tkinter as tk
from collections.abc import Callable
from enum import Enum
from typing import Any

from tagmeister.util.config.BaseConfig import BaseConfig
from tagmeister.util.type_util import issubclass_safe


class UIState:
    """Binds the fields of a config object to tk variables. Writes to a variable update the object."""

    __vars: dict[str, Any]
    __var_traces: dict[str, dict[int, Callable[[], None]]]
    __latest_var_trace_id: int

    def __init__(self, master, obj: BaseConfig):
        self.master = master
        self.obj = obj

        self.__vars = self.__create_vars(obj)
        self.__var_traces = {name: {} for name in self.__vars}
        self.__latest_var_trace_id = 0

    def get_var(self, name):
        return self.__vars[name]

    def add_var_trace(self, name, command: Callable[[], None]) -> int:
        self.__latest_var_trace_id += 1
        self.__var_traces[name][self.__latest_var_trace_id] = command
        return self.__latest_var_trace_id

    def remove_var_trace(self, name, trace_id):
        self.__var_traces[name].pop(trace_id)

    def __call_var_traces(self, name):
        for trace in self.__var_traces[name].values():
            trace()

    def __set_str_var(self, obj, name, var, nullable):
        def update(_0, _1, _2):
            string_var = var.get()
            if string_var == "" and nullable:
                setattr(obj, name, None)
            else:
                setattr(obj, name, string_var)
            self.__call_var_traces(name)

        return update

    def __set_enum_var(self, obj, name, var, var_type, nullable):
        def update(_0, _1, _2):
            string_var = var.get()
            if string_var == "" and nullable:
                setattr(obj, name, None)
            else:
                with contextlib.suppress(KeyError):
                    setattr(obj, name, var_type[string_var])
            self.__call_var_traces(name)

        return update

    def __set_bool_var(self, obj, name, var):
        def update(_0, _1, _2):
            setattr(obj, name, var.get())
            self.__call_var_traces(name)

        return update

    def __set_number_var(self, obj, name, var, var_type, nullable):
        def update(_0, _1, _2):
            string_var = var.get()
            if string_var == "" and nullable:
                setattr(obj, name, None)
            else:
                with contextlib.suppress(ValueError):
                    setattr(obj, name, var_type(string_var))
            self.__call_var_traces(name)

        return update

    def __create_vars(self, obj: BaseConfig):
        new_vars = {}

        for name, var_type in obj.types.items():
            obj_var = getattr(obj, name)
            nullable = obj.nullables[name]

            if var_type is str:
                var = tk.StringVar(master=self.master)
                var.set("" if obj_var is None else obj_var)
                var.trace_add("write", self.__set_str_var(obj, name, var, nullable))
                new_vars[name] = var
            elif issubclass_safe(var_type, Enum):
                var = tk.StringVar(master=self.master)
                var.set("" if obj_var is None else str(obj_var))
                var.trace_add("write", self.__set_enum_var(obj, name, var, var_type, nullable))
                new_vars[name] = var
            elif var_type is bool:
                var = tk.BooleanVar(master=self.master)
                var.set(obj_var or False)
                var.trace_add("write", self.__set_bool_var(obj, name, var))
                new_vars[name] = var
            elif var_type in (int, float):
                var = tk.StringVar(master=self.master)
                var.set("" if obj_var is None else str(obj_var))
                var.trace_add("write", self.__set_number_var(obj, name, var, var_type, nullable))
                new_vars[name] = var

        return new_vars
