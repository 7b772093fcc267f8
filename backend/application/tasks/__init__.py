from .project_tasks import recalculate_all_projects, recalculate_project_progress

__all__ = ['recalculate_all_projects', 'recalculate_project_progress']
