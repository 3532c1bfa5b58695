from opsbridge.cli import app

app(prog_name="opsbridge")
