import re

import unicodedata

# chat component color names -> legacy formatting codes
COLOR_CODES = {
    "black": "0",
    "dark_blue": "1",
    "dark_green": "2",
    "dark_aqua": "3",
    "dark_red": "4",
    "dark_purple": "5",
    "gold": "6",
    "gray": "7",
    "dark_gray": "8",
    "blue": "9",
    "green": "a",
    "aqua": "b",
    "red": "c",
    "light_purple": "d",
    "yellow": "e",
    "white": "f",
}


class Text:
    def __init__(self, logger=None):
        """Initializes the text class

        Args:
            logger (Logger, optional): The logger class
        """
        self.logger = logger

    @staticmethod
    def c_filter(text: str, trim: bool = True) -> str:
        """Removes all formatting codes from a string

        Args:
            text [str]: The string to remove formatting codes from
            trim [bool]: Whether to trim the string or not

        Returns:
            [str]: The string without formatting codes
        """
        text = re.sub(r"§[0-9a-fk-or]?", "", text, flags=re.IGNORECASE)
        if trim:
            text = text.strip()

        # drop control chars but keep line breaks
        text = "".join(
            char
            for char in text
            if char in "\n\t" or unicodedata.category(char) not in ("Cc", "Cf")
        )

        return text

    @staticmethod
    def color_mine(color: str) -> str:
        """Returns the legacy formatting code for a chat component color

        Args:
            color (str): The color name, e.g. ``dark_red``

        Returns:
            str: ``§`` plus the code, or an empty string for unknown colors
        """
        code = COLOR_CODES.get(color)
        return f"§{code}" if code is not None else ""

    def motd_parse(self, motd) -> str:
        """Flattens a description into text

        Strings are kept verbatim, chat components have their ``text`` and
        ``extra`` parts joined depth first with colors kept as formatting codes.

        Args:
            motd (str | dict | list): The description from the status response

        Returns:
            str: The description text
        """
        if motd is None:
            return None
        if isinstance(motd, str):
            return motd

        def parse_component(component):
            if isinstance(component, str):
                return component
            if isinstance(component, list):
                return "".join(parse_component(c) for c in component)
            if not isinstance(component, dict):
                return str(component)

            _text = ""
            if "color" in component:
                _text += self.color_mine(color=str(component["color"]))
            if "text" in component:
                _text += str(component["text"])
            if "extra" in component:
                _text += parse_component(component["extra"])
            return _text

        text = parse_component(motd)
        if self.logger is not None:
            self.logger.debug(f"Parsed description component into {text!r}")
        return text
