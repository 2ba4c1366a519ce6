from enum import Enum


class CaptionModel(Enum):
    GPT_4O_MINI = 'GPT_4O_MINI'
    GPT_4O = 'GPT_4O'
    GPT_4O_TURBO = 'GPT_4O_TURBO'

    def __str__(self):
        return self.value

    def model_id(self) -> str:
        match self:
            case CaptionModel.GPT_4O_MINI:
                return 'gpt-4o-mini'
            case CaptionModel.GPT_4O:
                return 'gpt-4o'
            case CaptionModel.GPT_4O_TURBO:
                return 'gpt-4o-turbo'
            case _:
                raise ValueError
