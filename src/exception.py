import click

class CLIException(Exception):
    def __init__(self, *args, description:str = "Something happend..."):
        click.echo(description, err=True)
        self.description = description
        super().__init__(description, *args)


class VariablesError(CLIException):
    """
    Входные переменные стека не прошли проверку.
    """

    def __init__(self, *args, problems: list[str] | None = None):
        self.problems = problems or []
        description = "Invalid stack variables: " + "; ".join(self.problems)
        super().__init__(*args, description=description)
