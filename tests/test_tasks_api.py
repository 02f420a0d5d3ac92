from datetime import datetime

import pytest

MONDAY = datetime(2026, 3, 2, 11, 0)


@pytest.fixture
def task(client, headers, people, set_clock):
    set_clock(MONDAY)
    r = client.post("/tasks", headers=headers["sales_lead"], json={
        "title": "Prepare monthly report",
        "description": "Compile attendance figures",
        "assignee_id": people["sales_emp"].id,
        "due_date": "2026-03-10",
        "priority": "high",
    })
    assert r.status_code == 201, r.text
    return r.json()


def test_leader_assigns_within_department(task, people):
    assert task["status"] == "pending"
    assert task["department_id"] == people["sales_dept"].id
    assert task["assigned_by_id"] == people["sales_lead"].id


def test_assignment_rules(client, headers, people, set_clock):
    set_clock(MONDAY)
    payload = {
        "title": "Stock count",
        "description": "Count the warehouse",
        "due_date": "2026-03-10",
    }
    r = client.post("/tasks", headers=headers["sales_lead"], json={**payload, "assignee_id": people["ops_emp"].id})
    assert r.status_code == 403
    r = client.post("/tasks", headers=headers["sales_lead"], json={**payload, "assignee_id": people["ops_lead"].id})
    assert r.status_code == 403
    r = client.post("/tasks", headers=headers["sales_emp"], json={**payload, "assignee_id": people["sales_emp2"].id})
    assert r.status_code == 403
    r = client.post("/tasks", headers=headers["admin"], json={**payload, "assignee_id": 9999})
    assert r.status_code == 404
    r = client.post("/tasks", headers=headers["admin"], json={**payload, "assignee_id": people["ops_lead"].id, "due_date": "2026-03-01"})
    assert r.status_code == 400
    r = client.post("/tasks", headers=headers["admin"], json={**payload, "assignee_id": people["ops_lead"].id})
    assert r.status_code == 201


def test_assignee_status_transitions(client, headers, task):
    url = f"/tasks/{task['id']}/status"
    r = client.patch(url, headers=headers["sales_emp"], json={"status": "in_progress"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "in_progress"

    r = client.patch(url, headers=headers["sales_emp"], json={"status": "completed"})
    assert r.status_code == 403
    r = client.patch(url, headers=headers["sales_emp"], json={"status": "cancelled"})
    assert r.status_code == 403

    r = client.patch(url, headers=headers["sales_lead"], json={"status": "completed"})
    assert r.status_code == 200
    assert r.json()["status"] == "completed"


def test_status_change_leaves_comment(client, headers, task):
    client.patch(f"/tasks/{task['id']}/status", headers=headers["sales_emp"], json={"status": "in_progress"})
    r = client.post(f"/tasks/{task['id']}/comments", headers=headers["sales_emp"], json={"comment": "Halfway there"})
    assert r.status_code == 201

    comments = client.get(f"/tasks/{task['id']}/comments", headers=headers["sales_lead"]).json()
    assert [c["comment"] for c in comments] == ["Status updated to: in_progress", "Halfway there"]


def test_visibility(client, headers, task):
    assert client.get(f"/tasks/{task['id']}", headers=headers["sales_emp"]).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=headers["admin"]).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=headers["ops_lead"]).status_code == 403
    assert client.get(f"/tasks/{task['id']}", headers=headers["sales_emp2"]).status_code == 403
    assert client.get("/tasks/9999", headers=headers["admin"]).status_code == 404

    assert [t["id"] for t in client.get("/tasks", headers=headers["sales_emp"]).json()] == [task["id"]]
    assert client.get("/tasks", headers=headers["ops_emp"]).json() == []
    assert len(client.get("/tasks?priority=high", headers=headers["sales_lead"]).json()) == 1
    assert client.get("/tasks?status=completed", headers=headers["sales_lead"]).json() == []


def test_stats(client, headers, people, task, set_clock):
    client.patch(f"/tasks/{task['id']}/status", headers=headers["sales_lead"], json={"status": "completed"})
    client.post("/tasks", headers=headers["sales_lead"], json={
        "title": "Call clients",
        "description": "Follow up",
        "assignee_id": people["sales_emp"].id,
        "due_date": "2026-03-03",
    })

    set_clock(datetime(2026, 3, 5, 12, 0))
    r = client.get(f"/tasks/stats/{people['sales_emp'].id}", headers=headers["sales_lead"])
    assert r.status_code == 200, r.text
    assert r.json() == {
        "assigned_tasks": 2,
        "completed_tasks": 1,
        "incomplete_tasks": 1,
        "overdue_tasks": 1,
        "task_completion_percentage": 50.0,
    }
    r = client.get(f"/tasks/stats/{people['sales_emp'].id}", headers=headers["ops_lead"])
    assert r.status_code == 403


def test_personal_task(client, headers, people, set_clock):
    set_clock(MONDAY)
    r = client.post("/tasks/personal", headers=headers["sales_emp"], json={
        "title": "  Cleaned up the client list  ",
        "is_completed": True,
    })
    assert r.status_code == 201, r.text
    done = r.json()
    assert done["title"] == "Cleaned up the client list"
    assert done["description"] == ""
    assert done["status"] == "completed"
    assert done["priority"] == "medium"
    assert done["due_date"] == "2026-03-02"
    assert done["assignee_id"] == done["assigned_by_id"] == people["sales_emp"].id
    assert done["department_id"] == people["sales_dept"].id

    r = client.post("/tasks/personal", headers=headers["ops_lead"], json={"title": "Plan rota", "description": "Next week"})
    assert r.status_code == 201
    assert r.json()["status"] == "pending"

    assert [t["id"] for t in client.get("/tasks", headers=headers["sales_emp"]).json()] == [done["id"]]
    assert client.get(f"/tasks/{done['id']}", headers=headers["sales_lead"]).status_code == 200
    assert client.get(f"/tasks/{done['id']}", headers=headers["ops_lead"]).status_code == 403

    r = client.post("/tasks/personal", headers=headers["sales_emp"], json={"title": "   "})
    assert r.status_code == 400


def test_priority_change(client, headers, task):
    url = f"/tasks/{task['id']}/priority"
    r = client.patch(url, headers=headers["sales_emp"], json={"priority": "low"})
    assert r.status_code == 200, r.text
    assert r.json()["priority"] == "low"
    assert r.json()["status"] == "pending"

    r = client.patch(url, headers=headers["sales_lead"], json={"priority": "critical"})
    assert r.status_code == 200
    assert r.json()["priority"] == "critical"

    assert client.patch(url, headers=headers["ops_lead"], json={"priority": "low"}).status_code == 403
    assert client.patch(url, headers=headers["sales_emp2"], json={"priority": "low"}).status_code == 403
    assert client.patch(url, headers=headers["sales_emp"], json={"priority": "urgent"}).status_code == 422
    assert client.patch("/tasks/9999/priority", headers=headers["admin"], json={"priority": "low"}).status_code == 404
