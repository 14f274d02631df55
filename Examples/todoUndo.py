import json
from jstate import StateObject


def addTask(so, title):
    so.state["tasks"].append({"title": title, "done": False, "tags": []})


def completeTask(so, index):
    so.state["tasks"][index]["done"] = True


if __name__ == "__main__":
    events = []
    so = StateObject({"title": "Groceries", "tasks": []}, changeMonitor=events.append)

    addTask(so, "milk")
    addTask(so, "bread")
    addTask(so, "eggs")
    assert len(so.rawState["tasks"]) == 3
    assert len(so.changes) == 3

    completeTask(so, 1)
    assert so.rawState["tasks"][1]["done"]
    so.undo()
    assert not so.rawState["tasks"][1]["done"]
    so.redo()
    assert so.rawState["tasks"][1]["done"]

    # tag all tasks in a single undo step
    with so.transaction() as state:
        for task in state["tasks"]:
            task["tags"].append("shop")
    assert all(t["tags"] == ["shop"] for t in so.rawState["tasks"])
    assert len(so.changes) == 5
    so.undo()
    assert all(t["tags"] == [] for t in so.rawState["tasks"])

    # a new modification discards the undone transaction
    so.state["title"] = "Weekend groceries"
    assert not so.redoable()
    assert len(so.changes) == 5

    # look back in time without touching the state
    assert so.stateAt(0) == {"title": "Groceries", "tasks": []}
    assert [t["title"] for t in so.stateAt(2)["tasks"]] == ["milk", "bread"]

    # persist and reload, history included
    data = json.dumps(so.store())
    reloaded = StateObject()
    reloaded.restore(json.loads(data))
    assert reloaded.rawState == so.rawState
    reloaded.undo()
    assert reloaded.rawState["title"] == "Groceries"

    assert [event.__class__.__name__ for event in events] == ["ChangeSet"] * len(events)
