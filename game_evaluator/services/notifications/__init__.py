from game_evaluator.services.notifications.slack_notifier import SlackNotifier

__all__ = ["SlackNotifier"]
