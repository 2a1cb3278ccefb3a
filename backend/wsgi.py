from cyberpos import create_app

app = create_app()
