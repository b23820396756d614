"""
Assignments and quizzes
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import (
    db, Course, Assignment, AssignmentSubmission, Quiz, QuizQuestion, QuizAttempt, User
)
from kmmedia.models.content import QUESTION_TYPES
from kmmedia.services.access_service import AccessService
from kmmedia.services.notification_service import NotificationService
from kmmedia.services.storage_service import StorageService
from kmmedia.utils.exceptions import (
    ValidationError, AuthorizationError, NotFoundError, ConflictError
)
from kmmedia.utils.helpers import utcnow
from kmmedia.utils.validators import (
    validate_required, validate_choice, parse_int, parse_datetime
)


def _normalize_answer(question: QuizQuestion, answer: Any) -> str:
    if answer is None:
        return ''
    text = str(answer).strip()
    if question.question_type in ('true_false', 'short_answer'):
        return text.lower()
    return text


def grade_answers(quiz: Quiz, answers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Score answers keyed by question id

    Returns:
        points_earned, total_points, the rounded percentage score and
        whether the unrounded percentage reaches the passing score
    """
    earned = 0
    for question in quiz.questions:
        given = answers.get(str(question.id), answers.get(question.id))
        if given is None:
            continue
        if _normalize_answer(question, given) == _normalize_answer(question, question.correct_answer):
            earned += question.points
    total = quiz.total_points
    score = round(earned * 100 / total) if total else 0
    passed = bool(total) and earned * 100 >= quiz.passing_score * total
    return {'points_earned': earned, 'total_points': total, 'score': score, 'passed': passed}


class AssessmentService:
    """Assignment and quiz service class"""

    @staticmethod
    def _get_course(course_id: int) -> Course:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    @staticmethod
    def _get_assignment(assignment_id: int) -> Assignment:
        assignment = db.session.get(Assignment, assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    @staticmethod
    def _get_quiz(quiz_id: int) -> Quiz:
        quiz = db.session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    @staticmethod
    def _require_student_access(user: User, course: Course) -> None:
        if user.role != 'student':
            raise AuthorizationError("Only students can do this")
        AccessService.require_access(user, course)

    # Assignments

    @staticmethod
    def list_assignments(user: User, course_id: int) -> List[Dict[str, Any]]:
        """Assignments for the course; students also get their own submission"""
        course = AssessmentService._get_course(course_id)
        AccessService.require_access(user, course)

        query = Assignment.query.filter_by(course_id=course.id)
        if not AccessService.can_manage(user, course):
            query = query.filter(Assignment.is_active.is_(True))
        assignments = query.order_by(Assignment.due_date.is_(None), Assignment.due_date.asc(),
                                     Assignment.id.asc()).all()

        result = []
        for assignment in assignments:
            data = assignment.to_dict()
            if user.role == 'student':
                submission = AssignmentSubmission.query.filter_by(
                    assignment_id=assignment.id, student_id=user.id
                ).first()
                data['submission'] = submission.to_dict() if submission else None
            else:
                data['submission_count'] = len(assignment.submissions)
            result.append(data)
        return result

    @staticmethod
    def create_assignment(user: User, course_id: int, data: Dict[str, Any]) -> Assignment:
        course = AssessmentService._get_course(course_id)
        AccessService.require_manage(user, course)
        validate_required(data.get('title'), 'Title')
        validate_required(data.get('description'), 'Description')

        assignment = Assignment(
            course_id=course.id,
            title=str(data['title']).strip(),
            description=str(data['description']).strip(),
            instructions=data.get('instructions'),
            due_date=parse_datetime(data.get('due_date'), 'Due date'),
            max_score=parse_int(data.get('max_score', 100), 'Maximum score', min_value=1),
            is_active=True,
            created_by=user.id
        )
        db.session.add(assignment)
        db.session.commit()
        current_app.logger.info(f"Assignment {assignment.id} created in course {course.id}")
        return assignment

    @staticmethod
    def update_assignment(user: User, assignment_id: int, data: Dict[str, Any]) -> Assignment:
        assignment = AssessmentService._get_assignment(assignment_id)
        AccessService.require_manage(user, assignment.course)
        if 'title' in data:
            validate_required(data['title'], 'Title')
            assignment.title = str(data['title']).strip()
        if 'description' in data:
            validate_required(data['description'], 'Description')
            assignment.description = str(data['description']).strip()
        if 'instructions' in data:
            assignment.instructions = data['instructions']
        if 'due_date' in data:
            assignment.due_date = parse_datetime(data['due_date'], 'Due date')
        if 'max_score' in data:
            assignment.max_score = parse_int(data['max_score'], 'Maximum score', min_value=1)
        if 'is_active' in data:
            assignment.is_active = bool(data['is_active'])
        db.session.commit()
        return assignment

    @staticmethod
    def delete_assignment(user: User, assignment_id: int) -> None:
        assignment = AssessmentService._get_assignment(assignment_id)
        AccessService.require_manage(user, assignment.course)
        db.session.delete(assignment)
        db.session.commit()

    @staticmethod
    def submit_assignment(user: User, assignment_id: int, data: Dict[str, Any], file=None) -> AssignmentSubmission:
        """
        Submit (or resubmit) an assignment

        Args:
            user: Student with access to the course
            assignment_id: Assignment being answered
            data: Optional submission_text
            file: Optional uploaded file

        Returns:
            The submission, marked late after the due date
        """
        assignment = AssessmentService._get_assignment(assignment_id)
        AssessmentService._require_student_access(user, assignment.course)
        if not assignment.is_active:
            raise ValidationError("This assignment is closed")

        text = (data.get('submission_text') or '').strip() or None
        has_file = file is not None and bool(file.filename)
        if not text and not has_file:
            raise ValidationError("Submission text or a file is required")

        submission = AssignmentSubmission.query.filter_by(
            assignment_id=assignment.id, student_id=user.id
        ).first()
        if submission is not None and submission.status == 'graded':
            raise ConflictError("This assignment has already been graded")

        old_file_url = None
        if submission is None:
            submission = AssignmentSubmission(assignment_id=assignment.id, student_id=user.id)
            db.session.add(submission)

        if has_file:
            stored = StorageService.save(file, f"course_{assignment.course_id}/submissions")
            old_file_url = submission.file_url
            submission.file_url = stored['file_url']
            submission.file_name = stored['file_name']

        now = utcnow()
        submission.submission_text = text
        submission.submitted_at = now
        submission.status = 'late' if assignment.due_date and now > assignment.due_date else 'submitted'
        db.session.commit()
        if old_file_url:
            StorageService.delete(old_file_url)
        current_app.logger.info(
            f"User {user.id} submitted assignment {assignment.id} ({submission.status})"
        )
        return submission

    @staticmethod
    def list_submissions(user: User, assignment_id: int) -> List[AssignmentSubmission]:
        assignment = AssessmentService._get_assignment(assignment_id)
        AccessService.require_manage(user, assignment.course)
        return (AssignmentSubmission.query
                .filter_by(assignment_id=assignment.id)
                .order_by(AssignmentSubmission.submitted_at.asc())
                .all())

    @staticmethod
    def grade_submission(user: User, submission_id: int, score: Any,
                         feedback: Optional[str] = None) -> AssignmentSubmission:
        submission = db.session.get(AssignmentSubmission, submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        assignment = submission.assignment
        AccessService.require_manage(user, assignment.course)

        submission.score = parse_int(score, 'Score', min_value=0, max_value=assignment.max_score)
        submission.feedback = feedback
        submission.status = 'graded'
        submission.graded_at = utcnow()
        submission.graded_by = user.id
        NotificationService.notify(
            submission.student,
            'assignment',
            'Assignment graded',
            f"Your submission for \"{assignment.title}\" was graded: "
            f"{submission.score}/{assignment.max_score}."
        )
        db.session.commit()
        return submission

    # Quizzes

    @staticmethod
    def _build_question(data: Dict[str, Any], index: int) -> QuizQuestion:
        validate_required(data.get('question'), 'Question')
        question_type = validate_choice(data.get('question_type'), QUESTION_TYPES, 'Question type')
        validate_required(data.get('correct_answer'), 'Correct answer')
        correct = str(data['correct_answer']).strip()
        options = data.get('options')

        if question_type == 'multiple_choice':
            if not isinstance(options, list) or len(options) < 2:
                raise ValidationError("Multiple choice questions need at least two options")
            options = [str(option).strip() for option in options]
            if correct not in options:
                raise ValidationError("Correct answer must be one of the options")
        elif question_type == 'true_false':
            correct = correct.lower()
            if correct not in ('true', 'false'):
                raise ValidationError("True/false answers must be true or false")
            options = ['true', 'false']
        else:
            options = None

        return QuizQuestion(
            question=str(data['question']).strip(),
            question_type=question_type,
            options=options,
            correct_answer=correct,
            points=parse_int(data.get('points', 1), 'Points', min_value=1),
            order_index=index
        )

    @staticmethod
    def create_quiz(user: User, course_id: int, data: Dict[str, Any]) -> Quiz:
        """
        Create a quiz with its questions

        Args:
            user: Course manager
            course_id: Target course
            data: title, optional description, time_limit, max_attempts,
                passing_score and a non-empty questions list

        Returns:
            The created quiz
        """
        course = AssessmentService._get_course(course_id)
        AccessService.require_manage(user, course)
        validate_required(data.get('title'), 'Title')
        questions = data.get('questions') or []
        if not isinstance(questions, list) or not questions:
            raise ValidationError("A quiz needs at least one question")

        time_limit = data.get('time_limit')
        quiz = Quiz(
            course_id=course.id,
            title=str(data['title']).strip(),
            description=data.get('description'),
            time_limit=parse_int(time_limit, 'Time limit', min_value=1) if time_limit not in (None, '') else None,
            max_attempts=parse_int(data.get('max_attempts', 1), 'Maximum attempts', min_value=1),
            passing_score=parse_int(data.get('passing_score', 70), 'Passing score', min_value=0, max_value=100),
            is_active=True
        )
        for index, question in enumerate(questions):
            quiz.questions.append(AssessmentService._build_question(question, index))
        db.session.add(quiz)
        db.session.commit()
        current_app.logger.info(f"Quiz {quiz.id} created in course {course.id} with {len(questions)} question(s)")
        return quiz

    @staticmethod
    def update_quiz(user: User, quiz_id: int, data: Dict[str, Any]) -> Quiz:
        quiz = AssessmentService._get_quiz(quiz_id)
        AccessService.require_manage(user, quiz.course)
        if 'title' in data:
            validate_required(data['title'], 'Title')
            quiz.title = str(data['title']).strip()
        if 'description' in data:
            quiz.description = data['description']
        if 'time_limit' in data:
            quiz.time_limit = parse_int(data['time_limit'], 'Time limit', min_value=1) if data['time_limit'] else None
        if 'max_attempts' in data:
            quiz.max_attempts = parse_int(data['max_attempts'], 'Maximum attempts', min_value=1)
        if 'passing_score' in data:
            quiz.passing_score = parse_int(data['passing_score'], 'Passing score', min_value=0, max_value=100)
        if 'is_active' in data:
            quiz.is_active = bool(data['is_active'])
        db.session.commit()
        return quiz

    @staticmethod
    def delete_quiz(user: User, quiz_id: int) -> None:
        quiz = AssessmentService._get_quiz(quiz_id)
        AccessService.require_manage(user, quiz.course)
        db.session.delete(quiz)
        db.session.commit()

    @staticmethod
    def list_quizzes(user: User, course_id: int) -> List[Quiz]:
        course = AssessmentService._get_course(course_id)
        AccessService.require_access(user, course)
        query = Quiz.query.filter_by(course_id=course.id)
        if not AccessService.can_manage(user, course):
            query = query.filter(Quiz.is_active.is_(True))
        return query.order_by(Quiz.created_at.asc(), Quiz.id.asc()).all()

    @staticmethod
    def get_quiz(user: User, quiz_id: int) -> Dict[str, Any]:
        """Quiz with questions; correct answers only for managers"""
        quiz = AssessmentService._get_quiz(quiz_id)
        AccessService.require_access(user, quiz.course)
        manager = AccessService.can_manage(user, quiz.course)
        if not quiz.is_active and not manager:
            raise NotFoundError("Quiz not found")
        return quiz.to_dict(include_questions=True, include_answers=manager)

    @staticmethod
    def _expired(attempt: QuizAttempt, now=None) -> bool:
        quiz = attempt.quiz
        if not quiz.time_limit or not attempt.started_at:
            return False
        return (now or utcnow()) > attempt.started_at + timedelta(minutes=quiz.time_limit)

    @staticmethod
    def start_attempt(user: User, quiz_id: int) -> QuizAttempt:
        """
        Start a quiz attempt, resuming the open one if it is still in time.

        Abandoned attempts count towards max_attempts.
        """
        quiz = AssessmentService._get_quiz(quiz_id)
        AssessmentService._require_student_access(user, quiz.course)
        if not quiz.is_active:
            raise ValidationError("This quiz is closed")

        open_attempt = QuizAttempt.query.filter_by(
            quiz_id=quiz.id, student_id=user.id, status='in_progress'
        ).first()
        if open_attempt is not None:
            if not AssessmentService._expired(open_attempt):
                return open_attempt
            open_attempt.status = 'abandoned'
            open_attempt.completed_at = utcnow()

        used = QuizAttempt.query.filter_by(quiz_id=quiz.id, student_id=user.id).count()
        if used >= quiz.max_attempts:
            db.session.commit()
            raise ValidationError("Maximum number of attempts reached")

        attempt = QuizAttempt(quiz_id=quiz.id, student_id=user.id, status='in_progress',
                              started_at=utcnow())
        db.session.add(attempt)
        db.session.commit()
        return attempt

    @staticmethod
    def submit_attempt(user: User, attempt_id: int, answers: Dict[str, Any]) -> QuizAttempt:
        """
        Grade a quiz attempt

        Args:
            user: Student who owns the attempt
            attempt_id: In-progress attempt
            answers: Mapping of question id to answer

        Returns:
            The attempt, completed with a percentage score or abandoned when
            submitted after the time limit
        """
        attempt = db.session.get(QuizAttempt, attempt_id)
        if not attempt or attempt.student_id != user.id:
            raise NotFoundError("Quiz attempt not found")
        if attempt.status != 'in_progress':
            raise ValidationError(f"Quiz attempt is already {attempt.status}")
        if answers is None or not isinstance(answers, dict):
            raise ValidationError("Answers must be an object keyed by question id")

        now = utcnow()
        attempt.answers = {str(key): value for key, value in answers.items()}
        attempt.completed_at = now
        if AssessmentService._expired(attempt, now):
            attempt.status = 'abandoned'
            db.session.commit()
            current_app.logger.info(f"Quiz attempt {attempt.id} submitted after the time limit")
            return attempt

        result = grade_answers(attempt.quiz, attempt.answers)
        attempt.points_earned = result['points_earned']
        attempt.score = result['score']
        attempt.passed = result['passed']
        attempt.status = 'completed'
        db.session.commit()
        return attempt

    @staticmethod
    def list_attempts(user: User, quiz_id: int) -> List[QuizAttempt]:
        quiz = AssessmentService._get_quiz(quiz_id)
        AccessService.require_access(user, quiz.course)
        query = QuizAttempt.query.filter_by(quiz_id=quiz.id)
        if not AccessService.can_manage(user, quiz.course):
            query = query.filter_by(student_id=user.id)
        return query.order_by(QuizAttempt.started_at.asc()).all()
