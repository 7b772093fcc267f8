from uuid import uuid4

import pytest

from application.services import ListOptions, ProjectQueries
from domain.shared.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    ValidationFailedException,
)

from .helpers import days, milestone_payload


@pytest.fixture
def portfolio(projects, owner, outsider):
    """Three projects for ``owner`` plus one private and one public project of ``outsider``."""
    ids = {
        "alpha": projects.create(owner, {"title": "Alpha", "priority": "high", "tags": ["web"]}).id,
        "beta": projects.create(owner, {"title": "Beta", "description": "Mobile web app"}).id,
        "gamma": projects.create(owner, {"title": "Gamma", "status": "on_hold", "due_date": days(3)}).id,
        "hidden": projects.create(outsider, {"title": "Hidden"}).id,
        "open": projects.create(outsider, {"title": "Open", "visibility": "public"}).id,
    }
    return ids


def titles(page):
    return [p.title for p in page.items]


class TestListProjects:

    def test_access_filter(self, queries, owner, portfolio):
        page = queries.list_projects(owner, ListOptions(sort_by="title", sort_order="asc"))
        assert titles(page) == ["Alpha", "Beta", "Gamma", "Open"]
        assert page.total == 4

    def test_soft_deleted_projects_are_hidden(self, queries, projects, owner, portfolio):
        projects.delete(owner, portfolio["beta"])
        page = queries.list_projects(owner, ListOptions(sort_by="title"))
        assert "Beta" not in titles(page)

    def test_filters_accept_single_and_multiple_values(self, queries, owner, portfolio):
        single = queries.list_projects(owner, ListOptions(filters={"priority": "high"}))
        assert titles(single) == ["Alpha"]

        several = queries.list_projects(
            owner, ListOptions(sort_by="title", sort_order="asc", filters={"status": ["active", "on_hold"]})
        )
        assert titles(several) == ["Alpha", "Beta", "Gamma", "Open"]

    def test_search_covers_title_description_and_tags(self, queries, owner, portfolio):
        page = queries.list_projects(owner, ListOptions(search="WEB", sort_by="title", sort_order="asc"))
        assert titles(page) == ["Alpha", "Beta"]

    def test_sort_order_defaults_to_descending(self, queries, owner, portfolio):
        page = queries.list_projects(owner, ListOptions(sort_by="title"))
        assert titles(page) == ["Open", "Gamma", "Beta", "Alpha"]

    def test_priority_sorts_by_rank(self, queries, projects, owner):
        for title, priority in [("L", "low"), ("U", "urgent"), ("M", "medium"), ("H", "high")]:
            projects.create(owner, {"title": title, "priority": priority})

        page = queries.list_projects(owner, ListOptions(sort_by="priority", sort_order="desc"))
        assert [p.priority.value for p in page.items] == ["urgent", "high", "medium", "low"]

        page = queries.list_projects(owner, ListOptions(sort_by="priority", sort_order="asc"))
        assert titles(page) == ["L", "M", "H", "U"]

    def test_missing_sort_values_go_last(self, queries, owner, portfolio):
        page = queries.list_projects(owner, ListOptions(sort_by="due_date", sort_order="desc"))
        assert titles(page)[0] == "Gamma"

    def test_limit_and_offset(self, queries, owner, portfolio):
        page = queries.list_projects(owner, ListOptions(sort_by="title", sort_order="asc", limit=2, offset=1))
        assert titles(page) == ["Beta", "Gamma"]
        assert page.has_more
        last = queries.list_projects(owner, ListOptions(sort_by="title", sort_order="asc", limit=2, offset=2))
        assert not last.has_more

    def test_limit_is_capped(self, storage, clock, owner, portfolio):
        capped = ProjectQueries(storage, clock=clock, max_limit=2)
        assert len(capped.list_projects(owner, ListOptions(limit=500)).items) == 2

    @pytest.mark.parametrize("options", [
        ListOptions(sort_by="owner_password"),
        ListOptions(sort_order="sideways"),
        ListOptions(limit=0),
        ListOptions(offset=-1),
    ])
    def test_bad_options(self, queries, owner, portfolio, options):
        with pytest.raises(ValidationFailedException):
            queries.list_projects(owner, options)


class TestProjectReads:

    def test_get_by_public_id(self, queries, storage, owner, portfolio):
        public_id = storage.projects.get(portfolio["alpha"]).public_id
        assert queries.get_by_public_id(owner, public_id).title == "Alpha"

    def test_private_project_of_someone_else(self, queries, owner, portfolio):
        with pytest.raises(PermissionDeniedException):
            queries.get_project(owner, portfolio["hidden"])

    def test_missing_project(self, queries, owner):
        with pytest.raises(EntityNotFoundException):
            queries.get_project(owner, uuid4())

    def test_admin_sees_everything(self, queries, admin, portfolio):
        assert queries.list_projects(admin).total == 5

    def test_user_projects(self, queries, projects, owner, member, portfolio):
        projects.add_member(owner, portfolio["alpha"], {"user_id": member.id})
        projects.update(owner, portfolio["beta"], {"status": "completed"})

        mine = queries.user_projects(owner)
        assert sorted(p.title for p in mine["owned"]) == ["Alpha", "Gamma"]
        assert mine["stats"]["active_owned"] == 1

        theirs = queries.user_projects(member)
        assert [p.title for p in theirs["collaborated"]] == ["Alpha"]
        assert theirs["owned"] == []

        with_archived = queries.user_projects(owner, include_archived=True)
        assert len(with_archived["owned"]) == 3

    def test_user_projects_of_someone_else(self, queries, owner, outsider, admin):
        with pytest.raises(PermissionDeniedException):
            queries.user_projects(owner, user_id=outsider.id)
        assert queries.user_projects(admin, user_id=outsider.id)["stats"]["total_owned"] == 0

    def test_project_stats(self, queries, owner, portfolio):
        stats = queries.project_stats(owner).as_dict()
        assert stats["total"] == 4
        assert stats["by_status"] == {"active": 3, "on_hold": 1}
        assert stats["at_risk"] == 1

    def test_members_and_history(self, queries, projects, owner, member, portfolio):
        projects.add_member(owner, portfolio["alpha"], {"user_id": member.id})
        projects.update(owner, portfolio["alpha"], {"title": "Alpha 2"})

        assert len(queries.project_members(member, portfolio["alpha"])) == 2

        project = queries.get_project(owner, portfolio["alpha"])
        actions = [e.action for e in queries.history(owner, project)]
        assert set(actions) == {"project.created", "project.updated"}


class TestMilestoneAndTaskReads:

    def test_list_and_stats(self, queries, milestones, owner, project_id):
        milestones.create(owner, project_id, milestone_payload(title="Second", order=2))
        milestones.create(owner, project_id, milestone_payload(title="First", order=1))
        late = milestones.create(owner, project_id, milestone_payload(
            title="Late", start_date=days(-10), due_date=days(-1),
        )).id

        page = queries.list_milestones(owner, project_id)
        assert [m.title for m in page.items] == ["First", "Second", "Late"]
        assert queries.get_milestone(owner, late).title == "Late"

        stats = queries.milestone_stats(owner, project_id)
        assert (stats.total, stats.in_progress, stats.delayed) == (3, 3, 1)
        assert queries.milestone_stats(owner).total == 3

    def test_upcoming_milestones(self, queries, milestones, owner, outsider, project_id):
        milestones.create(owner, project_id, milestone_payload(title="Soon", due_date=days(2)))
        milestones.create(owner, project_id, milestone_payload(title="Later", due_date=days(20)))
        milestones.create(owner, project_id, milestone_payload(title="Far", due_date=days(60)))

        assert [m.title for m in queries.upcoming_milestones(owner, days=30)] == ["Soon", "Later"]
        assert [m.title for m in queries.upcoming_milestones(owner, days=30, limit=1)] == ["Soon"]
        assert queries.upcoming_milestones(outsider) == []

    def test_list_tasks_with_filters(self, queries, tasks, owner, member, project_id):
        tasks.create(owner, project_id, {"title": "Mine", "assignee_id": owner.id})
        tasks.create(owner, project_id, {"title": "Theirs", "assignee_id": member.id, "status": "blocked"})

        page = queries.list_tasks(owner, project_id, ListOptions(filters={"assignee_id": str(member.id)}))
        assert [t.title for t in page.items] == ["Theirs"]

        by_status = queries.list_tasks(owner, project_id, ListOptions(filters={"status": "todo"}))
        assert [t.title for t in by_status.items] == ["Mine"]

    def test_critical_tasks_rank_highest(self, queries, tasks, owner, project_id):
        for priority in ("urgent", "low", "critical", "high"):
            tasks.create(owner, project_id, {"title": priority, "priority": priority})

        page = queries.list_tasks(owner, project_id, ListOptions(sort_by="priority", sort_order="desc"))
        assert [t.title for t in page.items] == ["critical", "urgent", "high", "low"]

    def test_deleted_task_is_not_found(self, queries, tasks, owner, project_id):
        task_id = tasks.create(owner, project_id, {"title": "Gone"}).id
        tasks.delete(owner, task_id)
        with pytest.raises(EntityNotFoundException):
            queries.get_task(owner, task_id)
