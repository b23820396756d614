"""
Course modules, materials and student progress
"""

from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import db, Course, CourseModule, CourseMaterial, MaterialProgress, User
from kmmedia.models.content import MATERIAL_TYPES
from kmmedia.services.access_service import AccessService
from kmmedia.services.storage_service import StorageService
from kmmedia.utils.exceptions import ValidationError, AuthorizationError, NotFoundError
from kmmedia.utils.helpers import utcnow
from kmmedia.utils.validators import validate_required, validate_choice, parse_int

# Material types that may be uploaded as a file
UPLOADABLE_TYPES = ('document', 'video', 'file')


def as_bool(value: Any) -> bool:
    """Booleans arrive as strings from multipart forms"""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'on', 'yes')
    return bool(value)


class MaterialService:
    """Course content service class"""

    @staticmethod
    def _get_course(course_id: int) -> Course:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    @staticmethod
    def _get_module(module_id: int) -> CourseModule:
        module = db.session.get(CourseModule, module_id)
        if not module:
            raise NotFoundError("Module not found")
        return module

    @staticmethod
    def _get_material(material_id: int) -> CourseMaterial:
        material = db.session.get(CourseMaterial, material_id)
        if not material:
            raise NotFoundError("Material not found")
        return material

    @staticmethod
    def _resolve_module_id(course: Course, module_id: Any) -> Optional[int]:
        if module_id in (None, '', 'null'):
            return None
        module = MaterialService._get_module(parse_int(module_id, 'Module'))
        if module.course_id != course.id:
            raise ValidationError("Module does not belong to this course")
        return module.id

    # Visibility

    @staticmethod
    def is_visible(user: User, material: CourseMaterial) -> bool:
        """
        Managers see everything, users with access see active materials and
        anyone signed in sees active public materials.
        """
        course = material.course
        if AccessService.can_manage(user, course):
            return True
        if not material.is_active:
            return False
        return material.is_public or AccessService.has_access(user, course)

    @staticmethod
    def visible_materials(user: User, course: Course, module_id: Optional[int] = None) -> List[CourseMaterial]:
        query = CourseMaterial.query.filter_by(course_id=course.id)
        if module_id is not None:
            query = query.filter_by(module_id=module_id)
        if not AccessService.can_manage(user, course):
            query = query.filter(CourseMaterial.is_active.is_(True))
            if not AccessService.has_access(user, course):
                query = query.filter(CourseMaterial.is_public.is_(True))
        return query.order_by(CourseMaterial.order_index.asc(), CourseMaterial.id.asc()).all()

    # Modules

    @staticmethod
    def list_modules(user: User, course_id: int) -> List[Dict[str, Any]]:
        """Ordered modules with the materials the user may see"""
        course = MaterialService._get_course(course_id)
        materials = MaterialService.visible_materials(user, course)
        if not materials and not AccessService.has_access(user, course):
            raise AuthorizationError("You do not have access to this course")

        by_module = {}
        for material in materials:
            by_module.setdefault(material.module_id, []).append(material)

        modules = [module.to_dict(materials=by_module.get(module.id, [])) for module in course.modules]
        if by_module.get(None):
            modules.append({
                'id': None,
                'course_id': course.id,
                'name': 'General',
                'description': None,
                'order_number': None,
                'materials': [material.to_dict() for material in by_module[None]]
            })
        return modules

    @staticmethod
    def create_module(user: User, course_id: int, data: Dict[str, Any]) -> CourseModule:
        course = MaterialService._get_course(course_id)
        AccessService.require_manage(user, course)
        validate_required(data.get('name'), 'Module name')

        if data.get('order_number') is not None:
            order_number = parse_int(data['order_number'], 'Order', min_value=0)
        else:
            highest = db.session.query(db.func.max(CourseModule.order_number)).filter_by(
                course_id=course.id
            ).scalar()
            order_number = (highest or 0) + 1

        module = CourseModule(
            course_id=course.id,
            name=str(data['name']).strip(),
            description=data.get('description'),
            order_number=order_number
        )
        db.session.add(module)
        db.session.commit()
        current_app.logger.info(f"Module {module.id} created in course {course.id} by user {user.id}")
        return module

    @staticmethod
    def update_module(user: User, module_id: int, data: Dict[str, Any]) -> CourseModule:
        module = MaterialService._get_module(module_id)
        AccessService.require_manage(user, module.course)
        if 'name' in data:
            validate_required(data['name'], 'Module name')
            module.name = str(data['name']).strip()
        if 'description' in data:
            module.description = data['description']
        if 'order_number' in data:
            module.order_number = parse_int(data['order_number'], 'Order', min_value=0)
        db.session.commit()
        return module

    @staticmethod
    def delete_module(user: User, module_id: int) -> None:
        """Delete a module; its materials stay in the course ungrouped"""
        module = MaterialService._get_module(module_id)
        AccessService.require_manage(user, module.course)
        for material in list(module.materials):
            material.module_id = None
        db.session.delete(module)
        db.session.commit()
        current_app.logger.info(f"Module {module_id} deleted by user {user.id}")

    # Materials

    @staticmethod
    def list_materials(user: User, course_id: int, module_id: Optional[int] = None) -> List[CourseMaterial]:
        course = MaterialService._get_course(course_id)
        materials = MaterialService.visible_materials(user, course, module_id)
        if not materials and not AccessService.has_access(user, course):
            raise AuthorizationError("You do not have access to this course")
        return materials

    @staticmethod
    def get_material(user: User, material_id: int) -> CourseMaterial:
        material = MaterialService._get_material(material_id)
        if not MaterialService.is_visible(user, material):
            raise AuthorizationError("You do not have access to this material")
        return material

    @staticmethod
    def create_material(user: User, course_id: int, data: Dict[str, Any], file=None) -> CourseMaterial:
        """
        Add a material to a course, either uploaded or by URL

        Args:
            user: Trainer or admin managing the course
            course_id: Target course
            data: title, type and optional description, module_id, file_url,
                duration, order_index, is_public
            file: Optional uploaded file

        Returns:
            The created material
        """
        course = MaterialService._get_course(course_id)
        AccessService.require_manage(user, course)
        validate_required(data.get('title'), 'Title')
        material_type = validate_choice(data.get('type') or ('file' if file else 'link'),
                                        MATERIAL_TYPES, 'Material type')

        material = CourseMaterial(
            course_id=course.id,
            module_id=MaterialService._resolve_module_id(course, data.get('module_id')),
            title=str(data['title']).strip(),
            description=data.get('description'),
            type=material_type,
            is_public=as_bool(data.get('is_public', False)),
            is_active=True,
            uploaded_by=user.id
        )
        if data.get('duration') not in (None, ''):
            material.duration = parse_int(data['duration'], 'Duration', min_value=0)
        if data.get('order_index') not in (None, ''):
            material.order_index = parse_int(data['order_index'], 'Order', min_value=0)
        else:
            material.order_index = CourseMaterial.query.filter_by(course_id=course.id).count()

        if file is not None and file.filename:
            if material_type not in UPLOADABLE_TYPES:
                raise ValidationError("Links cannot have an uploaded file")
            stored = StorageService.save(file, f"course_{course.id}/materials")
            material.file_url = stored['file_url']
            material.file_name = stored['file_name']
            material.file_size = stored['file_size']
        else:
            validate_required(data.get('file_url'), 'File or URL')
            material.file_url = str(data['file_url']).strip()
            material.file_name = data.get('file_name')

        db.session.add(material)
        db.session.commit()
        current_app.logger.info(f"Material {material.id} ({material.type}) added to course {course.id}")
        return material

    @staticmethod
    def update_material(user: User, material_id: int, data: Dict[str, Any]) -> CourseMaterial:
        material = MaterialService._get_material(material_id)
        AccessService.require_manage(user, material.course)
        if 'title' in data:
            validate_required(data['title'], 'Title')
            material.title = str(data['title']).strip()
        if 'description' in data:
            material.description = data['description']
        if 'module_id' in data:
            material.module_id = MaterialService._resolve_module_id(material.course, data['module_id'])
        if 'is_public' in data:
            material.is_public = as_bool(data['is_public'])
        if 'is_active' in data:
            material.is_active = as_bool(data['is_active'])
        if 'order_index' in data:
            material.order_index = parse_int(data['order_index'], 'Order', min_value=0)
        if 'duration' in data:
            material.duration = parse_int(data['duration'], 'Duration', min_value=0) if data['duration'] else None
        if 'file_url' in data and material.type == 'link':
            validate_required(data['file_url'], 'URL')
            material.file_url = str(data['file_url']).strip()
        db.session.commit()
        return material

    @staticmethod
    def toggle_material(user: User, material_id: int) -> CourseMaterial:
        material = MaterialService._get_material(material_id)
        AccessService.require_manage(user, material.course)
        material.is_active = not material.is_active
        db.session.commit()
        return material

    @staticmethod
    def delete_material(user: User, material_id: int) -> None:
        material = MaterialService._get_material(material_id)
        AccessService.require_manage(user, material.course)
        file_url = material.file_url if material.type != 'link' else None
        MaterialProgress.query.filter_by(material_id=material.id).delete()
        db.session.delete(material)
        db.session.commit()
        StorageService.delete(file_url)
        current_app.logger.info(f"Material {material_id} deleted by user {user.id}")

    @staticmethod
    def record_view(user: User, material_id: int) -> CourseMaterial:
        material = MaterialService.get_material(user, material_id)
        material.view_count = (material.view_count or 0) + 1
        db.session.commit()
        return material

    @staticmethod
    def record_download(user: User, material_id: int) -> CourseMaterial:
        material = MaterialService.get_material(user, material_id)
        material.download_count = (material.download_count or 0) + 1
        db.session.commit()
        return material

    # Progress

    @staticmethod
    def complete_material(user: User, material_id: int, time_spent: Any = None) -> MaterialProgress:
        """Mark a material completed for a student with course access"""
        material = MaterialService._get_material(material_id)
        if user.role != 'student':
            raise AuthorizationError("Only students track progress")
        AccessService.require_access(user, material.course)
        if not material.is_active:
            raise ValidationError("Material is not available")

        progress = MaterialProgress.query.filter_by(student_id=user.id, material_id=material.id).first()
        if progress is None:
            progress = MaterialProgress(student_id=user.id, course_id=material.course_id,
                                        material_id=material.id, time_spent=0)
            db.session.add(progress)
        if time_spent not in (None, ''):
            progress.time_spent = (progress.time_spent or 0) + parse_int(time_spent, 'Time spent', min_value=0)
        if progress.status != 'completed':
            progress.status = 'completed'
            progress.completed_at = utcnow()
        db.session.commit()
        return progress

    @staticmethod
    def course_progress(user: User, course_id: int) -> Dict[str, Any]:
        """Completed active materials over active materials"""
        total = CourseMaterial.query.filter_by(course_id=course_id, is_active=True).count()
        completed = (MaterialProgress.query
                     .join(CourseMaterial, MaterialProgress.material_id == CourseMaterial.id)
                     .filter(MaterialProgress.student_id == user.id,
                             MaterialProgress.course_id == course_id,
                             MaterialProgress.status == 'completed',
                             CourseMaterial.is_active.is_(True))
                     .count())
        percentage = round(completed * 100 / total) if total else 0
        return {
            'course_id': course_id,
            'total_materials': total,
            'completed_materials': completed,
            'percentage': percentage
        }
