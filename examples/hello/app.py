"""Hello World: the simplest roost app.

Demonstrates route groups, typed path parameters, request validation,
and a private route that needs the shared auth token.

Run:
    roost run app:app --socket-dir /tmp/hello

Call:
    roost call hello --socket-dir /tmp/hello
    roost call hello --socket-dir /tmp/hello --path /greet/alice
"""

from roost import App, Handler

app = App()


@app.handler("home")
class HomeHandler(Handler):
    def index(self) -> dict:
        return {"message": "Hello World!"}

    def greet(self, name: str) -> dict:
        return {"message": f"Hello, {name}!"}

    def status(self) -> dict:
        return {"status": "ok", "version": "0.1.0"}


@app.handler("notes")
class NoteHandler(Handler):
    def show(self, note_id: int) -> dict:
        return {"id": note_id, "double": note_id * 2}

    def create(self) -> dict:
        return {"created": self.data}


app.routes(
    "/",
    [
        {"controller": "home", "action": "index", "method": "GET", "uri": "/", "is_public": True},
        {
            "controller": "home",
            "action": "greet",
            "method": "GET",
            "uri": "/greet/{name}",
            "is_public": True,
        },
        {"controller": "home", "action": "status", "method": "GET", "uri": "/api/status"},
    ],
)
app.routes(
    "/notes",
    [
        {
            "controller": "notes",
            "action": "show",
            "method": "GET",
            "uri": "/{note_id:int}",
            "is_public": True,
        },
        {
            "controller": "notes",
            "action": "create",
            "method": "POST",
            "uri": "",
            "is_public": True,
            "accept": ["title"],
            "validations": {
                "title": [
                    {"rule": "required", "message": "Title is required"},
                    {
                        "rule": "max_length",
                        "params": {"max": 20},
                        "message": "Title must be at most {{max}} characters",
                    },
                ],
            },
        },
    ],
)
app.service("hello")


if __name__ == "__main__":
    app.run()
