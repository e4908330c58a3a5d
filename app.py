from knitflow import create_app

# Entry point for `flask --app app <command>`.
app = create_app()
